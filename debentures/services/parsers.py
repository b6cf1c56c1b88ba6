"""Extração posicional do PU PAR: tabela do histórico de PU e cards da ANBIMA.

Toda suposição sobre layout (colunas, marcador do card, formato da data)
fica concentrada aqui para que mudanças nas páginas toquem um único módulo.
"""
import re
from typing import Iterable, Optional, Tuple

from bs4 import BeautifulSoup

from debentures.services import config, dates
from debentures.services.models import (
    STATUS_FORMAT_ERROR,
    STATUS_NOT_FOUND,
    STATUS_OK,
    QuoteOutcome,
)

VALUE_RE = re.compile(config.VALUE_PATTERN)
REF_DATE_RE = re.compile(config.REF_DATE_PATTERN)

Card = Tuple[Optional[str], Optional[str]]


def is_valid_price(text: Optional[str]) -> bool:
    """PU no formato brasileiro com milhar agrupado (ex.: '1.234,5678')."""
    return bool(text) and VALUE_RE.fullmatch(text) is not None


def parse_price_history_table(html: str, code: str) -> QuoteOutcome:
    """Localiza a linha do ativo na tabela e lê data (coluna 1) e PU (coluna 5)."""
    soup = BeautifulSoup(html, "html.parser")

    code_cell = next((td for td in soup.find_all("td") if td.get_text(strip=True) == code), None)
    if code_cell is None:
        return QuoteOutcome(
            status=STATUS_NOT_FOUND,
            reason=f"Não há tabela com o elemento '{code}'",
        )

    row = code_cell.find_parent("tr")
    if row is None:
        return QuoteOutcome(
            status=STATUS_NOT_FOUND,
            reason=f"A célula '{code}' não pertence a uma linha de tabela",
        )
    cells = row.find_all(["td", "th"], recursive=False)

    if len(cells) <= config.REF_DATE_COLUMN:
        return QuoteOutcome(
            status=STATUS_NOT_FOUND,
            reason=f"A linha do ativo '{code}' não tem a coluna {config.REF_DATE_COLUMN} (data)",
        )
    raw_date = cells[config.REF_DATE_COLUMN].get_text(strip=True)
    ref_date = dates.to_internal(raw_date)
    if ref_date is None:
        return QuoteOutcome(
            status=STATUS_FORMAT_ERROR,
            reason=f"Formato de data inesperado '{raw_date}' para o ativo '{code}'",
        )

    if len(cells) <= config.VALUE_COLUMN:
        return QuoteOutcome(
            status=STATUS_NOT_FOUND,
            reason=f"A linha do ativo '{code}' não tem a coluna {config.VALUE_COLUMN} (PU)",
        )
    value = cells[config.VALUE_COLUMN].get_text(strip=True)
    if not is_valid_price(value):
        return QuoteOutcome(
            status=STATUS_FORMAT_ERROR,
            reason=f"Formato de valor inesperado '{value}' para o ativo '{code}'",
        )

    return QuoteOutcome(status=STATUS_OK, value=value, ref_date=ref_date)


def _extract_card_ref_date(title: str) -> Optional[str]:
    match = REF_DATE_RE.search(title.replace("\n", " "))
    if not match:
        return None
    return dates.to_internal(match.group(1))


def _normalize_card_value(text: Optional[str]) -> str:
    cleaned = (text or "").replace("\u00a0", " ").strip()
    if cleaned.startswith(config.CURRENCY_PREFIX):
        cleaned = cleaned[len(config.CURRENCY_PREFIX) :]
    return cleaned.strip()


def parse_nominal_price_cards(cards: Iterable[Card], code: str) -> QuoteOutcome:
    """
    Percorre os cards (título, valor) em ordem e usa o primeiro com 'PU PAR'.

    A iteração para no primeiro card que casa com o marcador, mesmo que ele
    não traga um valor utilizável.
    """
    for title, value in cards:
        if not title or config.NOMINAL_PRICE_MARKER not in title:
            continue

        ref_date = _extract_card_ref_date(title)
        if ref_date is None:
            return QuoteOutcome(
                status=STATUS_FORMAT_ERROR,
                reason=f"Data de referência inesperada no card PU PAR de '{code}'",
            )

        price = _normalize_card_value(value)
        if not is_valid_price(price):
            return QuoteOutcome(
                status=STATUS_FORMAT_ERROR,
                reason=f"PU PAR inesperado para '{code}': '{price}'",
            )
        return QuoteOutcome(status=STATUS_OK, value=price, ref_date=ref_date)

    return QuoteOutcome(
        status=STATUS_NOT_FOUND,
        reason=f"Título PU PAR não encontrado na página de '{code}'",
    )
