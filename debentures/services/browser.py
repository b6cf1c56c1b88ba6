# Fonte secundária: páginas renderizadas da ANBIMA via Playwright (Chromium)
import logging
import random
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from debentures.services import config, dates
from debentures.services.models import (
    STATUS_FETCH_ERROR,
    STATUS_NOT_FOUND,
    Asset,
    QuoteOutcome,
    ScrapError,
)
from debentures.services.parsers import Card, parse_nominal_price_cards

logger = logging.getLogger(__name__)


def _get_playwright_proxy() -> Optional[Dict[str, str]]:
    if not config.PROXY_ENABLED or not config.PROXY_SERVER:
        return None
    server = config.PROXY_SERVER
    if "://" not in server:
        server = f"http://{server}"
    proxy: Dict[str, str] = {"server": server}
    if config.PROXY_USERNAME and config.PROXY_PASSWORD:
        proxy["username"] = config.PROXY_USERNAME
        proxy["password"] = config.PROXY_PASSWORD
    return proxy


def build_page_url(base_url: str, code: str) -> str:
    return f"{base_url}/{code}/{config.CHARACTERISTICS_PATH}"


def _wait_for(page: Page, selector: str, timeout_ms: int) -> bool:
    """Espera o seletor aparecer; timeout significa 'não encontrado', não falha fatal."""
    try:
        page.wait_for_selector(selector, timeout=timeout_ms)
    except PlaywrightTimeoutError:
        return False
    return True


def _open_characteristics(page: Page, code: str) -> bool:
    page.goto(build_page_url(config.DEBENTURES_BASE_URL, code), timeout=config.PLAYWRIGHT_TIMEOUT_MS)
    if _wait_for(page, config.CARD_VALUE_SELECTOR, config.CARD_WAIT_MS):
        return True

    if not _wait_for(page, config.NOT_FOUND_SELECTOR, config.NOT_FOUND_WAIT_MS):
        return False

    # Código não é debênture: tenta a página de certificados de recebíveis
    logger.info("[debentures] '%s' não encontrado como debênture, tentando CRI/CRA", code)
    page.goto(build_page_url(config.RECEIVABLES_BASE_URL, code), timeout=config.PLAYWRIGHT_TIMEOUT_MS)
    return _wait_for(page, config.CARD_VALUE_SELECTOR, config.CARD_WAIT_MS)


def _iter_cards(page: Page) -> Iterator[Card]:
    for card in page.query_selector_all(config.CARD_SELECTOR):
        title = card.query_selector(config.CARD_TITLE_SELECTOR)
        value = card.query_selector(config.CARD_VALUE_SELECTOR)
        yield (
            title.text_content() if title else None,
            value.text_content() if value else None,
        )


def _scrape_asset(page: Page, asset: Asset) -> Tuple[QuoteOutcome, str]:
    """Devolve o resultado e o nome da captura de tela a usar em caso de falha."""
    unavailable = (
        f"Não foi possível obter os resultados do ativo '{asset.code}'. "
        "Verifique se o código está correto"
    )
    try:
        if not _open_characteristics(page, asset.code):
            return QuoteOutcome(status=STATUS_NOT_FOUND, reason=unavailable), asset.code

        logger.info("[debentures] 💰 Buscando o PU PAR de '%s'", asset.code)
        outcome = parse_nominal_price_cards(_iter_cards(page), asset.code)
    except PlaywrightError as exc:
        reason = f"{unavailable}: {str(exc)[:200]}"
        return QuoteOutcome(status=STATUS_FETCH_ERROR, reason=reason), asset.code

    if outcome.status == STATUS_NOT_FOUND:
        return outcome, config.SNAPSHOT_FALLBACK_NAME
    return outcome, asset.code


def _capture_snapshot(page: Page, name: str) -> None:
    path = Path(config.SNAPSHOT_DIR) / f"{name}.png"
    try:
        page.screenshot(path=str(path))
    except PlaywrightError as exc:
        logger.warning("[debentures] Falha ao salvar captura %s: %s", path, str(exc)[:200])


def fetch_secondary_prices(assets: List[Asset]) -> Tuple[bool, List[ScrapError]]:
    """
    Atualiza os ativos pelas páginas da ANBIMA; devolve (mudou, erros).

    O navegador é aberto uma vez para o lote e sempre fechado ao final. Falha
    ao iniciar o navegador é propagada para quem chamou.
    """
    today = dates.today_internal()
    if all(asset.ref_date == today for asset in assets):
        logger.warning("[debentures] Todos os ativos já estão atualizados.")
        return False, []

    errors: List[ScrapError] = []
    changed = False
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=config.PLAYWRIGHT_HEADLESS, proxy=_get_playwright_proxy())
        try:
            width, height = config.VIEWPORT
            page = browser.new_page(
                user_agent=random.choice(config.USER_AGENTS),
                viewport={"width": width, "height": height},
            )
            for asset in assets:
                if asset.ref_date == today:
                    logger.warning("[debentures] Ignorando ativo já atualizado '%s'", asset.code)
                    continue

                outcome, snapshot_name = _scrape_asset(page, asset)
                if not outcome.found:
                    logger.error("[debentures] %s [%s]", outcome.reason, outcome.status)
                    errors.append(ScrapError(outcome.reason, asset.code))
                    _capture_snapshot(page, snapshot_name)
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
            browser.close()

    return changed, errors
