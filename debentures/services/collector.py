import logging
from collections import Counter
from pathlib import Path
from typing import List, Tuple

from debentures.services import sheets
from debentures.services.browser import fetch_secondary_prices
from debentures.services.models import Asset, ScrapError, UpdateReport
from debentures.services.network import fetch_primary_prices

logger = logging.getLogger(__name__)


def _warn_duplicate_codes(assets: List[Asset]) -> None:
    duplicated = sorted(code for code, count in Counter(a.code for a in assets).items() if count > 1)
    if duplicated:
        # A partição por código trata as cópias como um único ativo; mantidas como estão
        logger.warning("[debentures] Códigos repetidos no lote: %s", ", ".join(duplicated))


def update_assets(assets: List[Asset]) -> Tuple[List[Asset], bool, List[ScrapError]]:
    """
    Atualiza os ativos pela fonte primária e repete pela secundária só os que falharam.

    Os erros da fonte primária são associados aos ativos pelo código. O
    resultado mantém primeiro os ativos resolvidos e depois os reprocessados;
    os erros devolvidos são os da fonte secundária.
    """
    _warn_duplicate_codes(assets)

    primary_changed, primary_errors = fetch_primary_prices(assets)
    if not primary_errors:
        return assets, primary_changed, []

    failed_codes = {error.asset_code for error in primary_errors}
    resolved = [asset for asset in assets if asset.code not in failed_codes]
    to_retry = [asset for asset in assets if asset.code in failed_codes]
    logger.info(
        "[debentures] %s ativo(s) sem PU pela fonte primária, tentando a secundária",
        len(to_retry),
    )

    secondary_changed, secondary_errors = fetch_secondary_prices(to_retry)
    return resolved + to_retry, primary_changed or secondary_changed, secondary_errors


def execute_update(credentials_path: Path) -> UpdateReport:
    """Lê a planilha, atualiza os PUs e grava de volta se algo mudou."""
    service = sheets.build_service(credentials_path)

    logger.info("[debentures] 📝 Lendo dados da planilha")
    assets = sheets.read_assets(service)
    if not assets:
        logger.warning("[debentures] Nenhum ativo encontrado na planilha")
        return UpdateReport()

    logger.info("[debentures] 🏊 Buscando PU PAR de %s ativo(s)", len(assets))
    assets, changed, errors = update_assets(assets)

    if changed:
        logger.info("[debentures] 📝 Atualizando a planilha")
        sheets.write_assets(service, assets)

    for error in errors:
        logger.error("[debentures] %s: %s", error.asset_code, error.message)
    logger.info("[debentures] 🏁 Execução concluída")
    return UpdateReport(assets=assets, changed=changed, errors=errors)
