import logging
import pathlib

from celery import shared_task
from django.conf import settings

from debentures.services.collector import execute_update


logger = logging.getLogger(__name__)


@shared_task
def update_nominal_prices() -> int:
    """Task Celery que executa a atualização completa da planilha."""
    credentials_path = pathlib.Path(settings.DEBENTURES_GOOGLE_CREDENTIALS)
    try:
        report = execute_update(credentials_path)
    except Exception as exc:
        logger.error(
            "[debentures] Erro crítico na atualização da planilha: %s",
            str(exc),
            exc_info=True,
        )
        # Sem retry automático: a próxima execução é a do agendamento do Beat
        raise

    if report.errors:
        codes = ", ".join(error.asset_code for error in report.errors)
        raise RuntimeError(f"Ativos sem PU PAR após as duas fontes: {codes}")
    return len(report.assets)
