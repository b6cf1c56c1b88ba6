# Modelos de dados usados pelo scraper (sem persistência: vivem só durante a execução)
from dataclasses import dataclass, field
from typing import List, Optional

STATUS_OK = "ok"
STATUS_NOT_FOUND = "not_found"
STATUS_FORMAT_ERROR = "format_error"
STATUS_FETCH_ERROR = "fetch_error"


# fmt: off
@dataclass
class Asset:
    """Ativo monitorado: código, data de referência (YYYY-MM-DD) e PU PAR ("1.234,5678")."""
    code: str
    ref_date: str = ""
    value: str = "0,0000"


@dataclass(frozen=True)
class ScrapError:
    """Falha de coleta associada ao ativo que a causou."""
    message: str
    asset_code: str


@dataclass
class QuoteOutcome:
    """Resultado explícito da consulta de um ativo em uma das fontes."""
    status: str
    value: Optional[str] = None
    ref_date: Optional[str] = None
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == STATUS_OK


@dataclass
class UpdateReport:
    """Resumo de uma execução completa (planilha -> fontes -> planilha)."""
    assets: List[Asset] = field(default_factory=list)
    changed: bool = False
    errors: List[ScrapError] = field(default_factory=list)
# fmt: on
