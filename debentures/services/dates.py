import re
from datetime import date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from django.utils import timezone

from debentures.services import config

_EXTERNAL_RE = re.compile(r"\d{2}/\d{2}/\d{4}")
_INTERNAL_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _format_external(day: date) -> str:
    # strftime("%Y") não completa anos < 1000 com zeros em todas as plataformas
    return f"{day.day:02d}/{day.month:02d}/{day.year:04d}"


def _reformat(
    text: Optional[str], pattern: re.Pattern, source: str, render: Callable[[date], str]
) -> Optional[str]:
    if text is None:
        return None
    cleaned = str(text).strip()
    if not pattern.fullmatch(cleaned):
        return None
    try:
        parsed = datetime.strptime(cleaned, source).date()
    except ValueError:
        return None
    return render(parsed)


def to_internal(text: Optional[str]) -> Optional[str]:
    """Converte 'DD/MM/YYYY' para 'YYYY-MM-DD'; None quando a data é inválida."""
    return _reformat(text, _EXTERNAL_RE, "%d/%m/%Y", date.isoformat)


def to_external(text: Optional[str]) -> Optional[str]:
    """Converte 'YYYY-MM-DD' para 'DD/MM/YYYY'; None quando a data é inválida."""
    return _reformat(text, _INTERNAL_RE, "%Y-%m-%d", _format_external)


def today(tz: Optional[str] = None) -> date:
    """Data corrente no fuso de referência (padrão America/New_York)."""
    zone = ZoneInfo(tz or config.REFERENCE_TIMEZONE)
    return timezone.localtime(timezone.now(), zone).date()


def today_internal(tz: Optional[str] = None) -> str:
    return today(tz).isoformat()
