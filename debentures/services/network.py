# Fonte primária: histórico de PU do debentures.com.br via POST de formulário
import logging
import random
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from debentures.services import config, dates
from debentures.services.models import (
    STATUS_FETCH_ERROR,
    Asset,
    QuoteOutcome,
    ScrapError,
)
from debentures.services.parsers import parse_price_history_table

logger = logging.getLogger(__name__)


def _get_requests_proxies() -> Optional[Dict[str, str]]:
    if not config.PROXY_ENABLED or not config.PROXY_SERVER:
        return None
    server = config.PROXY_SERVER
    if "://" not in server:
        server = f"http://{server}"
    if config.PROXY_USERNAME and config.PROXY_PASSWORD:
        scheme, rest = server.split("://", 1)
        server = f"{scheme}://{config.PROXY_USERNAME}:{config.PROXY_PASSWORD}@{rest}"
    return {"http": server, "https": server}


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": random.choice(config.USER_AGENTS),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
        }
    )
    proxies = _get_requests_proxies()
    if proxies:
        session.proxies.update(proxies)
    return session


def _format_form_date(day: date) -> str:
    return quote(dates.to_external(day.isoformat()), safe="")


def build_form_body(code: str, today: date) -> str:
    """Corpo x-www-form-urlencoded: código com '+' até 10 posições e janela de ±7 dias."""
    window = timedelta(days=config.DATE_WINDOW_DAYS)
    start = _format_form_date(today - window)
    end = _format_form_date(today + window)
    padded = code.ljust(config.ASSET_CODE_WIDTH, "+")
    return f"ativo={padded}&dt_ini={start}&dt_fim={end}"


def _is_textual(response: requests.Response) -> bool:
    content_type = response.headers.get("Content-Type", "").lower()
    if not content_type:
        return True
    return content_type.startswith("text/") or "html" in content_type or "xml" in content_type


def _fetch_asset_quote(session: requests.Session, asset: Asset, today: date) -> QuoteOutcome:
    try:
        response = session.post(
            config.PRIMARY_SOURCE_URL,
            data=build_form_body(asset.code, today),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=config.FETCH_TIMEOUT,
        )
        response.raise_for_status()
        if not _is_textual(response):
            return QuoteOutcome(
                status=STATUS_FETCH_ERROR,
                reason=(
                    f"Tipo de dado desconhecido para o ativo '{asset.code}': "
                    f"{response.headers.get('Content-Type')}"
                ),
            )

        logger.info("[debentures] 💰 Buscando o PU PAR de '%s'", asset.code)
        return parse_price_history_table(response.text, asset.code)
    except Exception as exc:
        return QuoteOutcome(
            status=STATUS_FETCH_ERROR,
            reason=(
                f"Não foi possível obter os resultados do ativo '{asset.code}'. "
                f"Verifique se o código está correto: {exc}"
            ),
        )


def fetch_primary_prices(
    assets: List[Asset], session: Optional[requests.Session] = None
) -> Tuple[bool, List[ScrapError]]:
    """Atualiza os ativos pela tabela do histórico de PU; devolve (mudou, erros)."""
    today = dates.today()
    today_text = today.isoformat()
    if all(asset.ref_date == today_text for asset in assets):
        logger.warning("[debentures] Todos os ativos já estão atualizados.")
        return False, []

    owns_session = session is None
    if owns_session:
        session = _build_session()
    errors: List[ScrapError] = []
    changed = False
    try:
        for asset in assets:
            if asset.ref_date == today_text:
                logger.warning("[debentures] Ignorando ativo já atualizado '%s'", asset.code)
                continue

            outcome = _fetch_asset_quote(session, asset, today)
            if not outcome.found:
                message = f"{outcome.reason}. Nova tentativa pela fonte secundária..."
                logger.warning("[debentures] %s [%s]", message, outcome.status)
                errors.append(ScrapError(message, asset.code))
                continue

            logger.info(
                "[debentures] 🔄 Atualizando ativo => %s: %s (%s)",
                asset.code,
                outcome.value,
                outcome.ref_date,
            )
            asset.value = outcome.value
            asset.ref_date = outcome.ref_date
            changed = True
    finally:
        if owns_session:
            session.close()

    return changed, errors
