"""Leitura e escrita da planilha de ativos no Google Sheets (conta de serviço)."""
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

from django.conf import settings
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from debentures.services import dates
from debentures.services.models import Asset

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Layout da planilha: dados a partir da linha 10 (índice 9), colunas Código | PU PAR | Data
START_ROW = 9
CODE_COLUMN = 0
VALUE_COLUMN = 1
REF_DATE_COLUMN = 2
DEFAULT_VALUE = "0,0000"


class SpreadsheetError(Exception):
    """Falha ao ler ou gravar a planilha."""


def build_service(credentials_path: Path) -> Any:
    try:
        credentials = Credentials.from_service_account_file(str(credentials_path), scopes=SCOPES)
    except (OSError, ValueError, GoogleAuthError) as exc:
        raise SpreadsheetError(f"Credencial inválida em {credentials_path}: {exc}") from exc
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def parse_rows(rows: List[List[Any]]) -> List[Asset]:
    """Converte as linhas da planilha em ativos; a tabela termina na primeira linha sem código."""
    assets: List[Asset] = []
    for index, row in enumerate(rows[START_ROW:], start=START_ROW):
        code = _cell(row, CODE_COLUMN)
        if not code:
            logger.warning(
                "[debentures] Leitura da planilha interrompida na linha %s (índice %s): "
                "célula de código vazia; %s linha(s) seguinte(s) ignorada(s)",
                index + 1,
                index,
                len(rows) - index - 1,
            )
            break
        assets.append(
            Asset(
                code=code.upper(),
                value=_cell(row, VALUE_COLUMN) or DEFAULT_VALUE,
                ref_date=dates.to_internal(_cell(row, REF_DATE_COLUMN)) or "",
            )
        )
    return assets


def read_assets(service: Any) -> List[Asset]:
    spreadsheet_id = settings.DEBENTURES_SPREADSHEET_ID
    if not spreadsheet_id:
        raise SpreadsheetError("DEBENTURES_SPREADSHEET_ID não configurado")
    try:
        result = (
            service.spreadsheets()
            .values()
            .get(spreadsheetId=spreadsheet_id, range=settings.DEBENTURES_SHEET_NAME)
            .execute()
        )
    except HttpError as exc:
        raise SpreadsheetError(f"Erro ao obter os dados da planilha: {exc}") from exc

    rows = result.get("values", [])
    if not rows:
        raise SpreadsheetError(f"A planilha '{spreadsheet_id}' não retornou dados")
    return parse_rows(rows)


def build_update_request(assets: List[Asset]) -> Dict[str, Any]:
    """Monta o batchUpdate que reescreve Código | PU PAR | Data a partir da linha inicial."""
    return {
        "requests": [
            {
                "updateCells": {
                    "range": {
                        "sheetId": settings.DEBENTURES_SHEET_GID,
                        "startRowIndex": START_ROW,
                        "endRowIndex": START_ROW + len(assets),
                        "startColumnIndex": CODE_COLUMN,
                        "endColumnIndex": CODE_COLUMN + 3,
                    },
                    "rows": [
                        {
                            "values": [
                                {"userEnteredValue": {"stringValue": asset.code}},
                                {"userEnteredValue": {"stringValue": asset.value}},
                                {
                                    "userEnteredValue": {
                                        "stringValue": dates.to_external(asset.ref_date) or ""
                                    }
                                },
                            ]
                        }
                        for asset in assets
                    ],
                    "fields": "userEnteredValue",
                }
            }
        ]
    }


def write_assets(service: Any, assets: List[Asset]) -> None:
    try:
        service.spreadsheets().batchUpdate(
            spreadsheetId=settings.DEBENTURES_SPREADSHEET_ID,
            body=build_update_request(assets),
        ).execute()
    except HttpError as exc:
        raise SpreadsheetError(f"Erro ao gravar os dados na planilha: {exc}") from exc
    logger.info("[debentures] Planilha atualizada (%s ativos)", len(assets))
