import os
from typing import Tuple

# Fontes de dados
PRIMARY_SOURCE_URL = os.getenv(
    "DEBENTURES_PRIMARY_URL",
    "https://www.debentures.com.br/exploreosnd/consultaadados/emissoesdedebentures/puhistorico_r.asp",
)
DEBENTURES_BASE_URL = os.getenv("DEBENTURES_ANBIMA_URL", "https://data.anbima.com.br/debentures")
RECEIVABLES_BASE_URL = os.getenv(
    "DEBENTURES_ANBIMA_RECEIVABLES_URL", "https://data.anbima.com.br/certificado-de-recebiveis"
)
CHARACTERISTICS_PATH = "caracteristicas"

# Fuso em que "hoje" é avaliado para saber se um ativo já está atualizado
REFERENCE_TIMEZONE = os.getenv("DEBENTURES_TIMEZONE", "America/New_York")

# Rede / scraping
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15",
]

FETCH_TIMEOUT = int(os.getenv("DEBENTURES_FETCH_TIMEOUT", "25"))
ASSET_CODE_WIDTH = 10
DATE_WINDOW_DAYS = 7

# Tabela do histórico de PU (debentures.com.br)
REF_DATE_COLUMN = 1
VALUE_COLUMN = 5
VALUE_PATTERN = r"\d{1,3}(\.\d{3})*,\d+"

# Páginas renderizadas (ANBIMA)
CARD_SELECTOR = ".lower-card-item"
CARD_TITLE_SELECTOR = ".lower-card-item-title"
CARD_VALUE_SELECTOR = ".lower-card-item-value"
NOT_FOUND_SELECTOR = "#maskNotFound"
NOMINAL_PRICE_MARKER = "PU PAR"
REF_DATE_PATTERN = r"ref\. +([\d/]+)"
CURRENCY_PREFIX = "R$"

PLAYWRIGHT_HEADLESS = os.getenv("PLAYWRIGHT_HEADLESS", "true").strip().lower() in {"1", "true", "yes"}
PLAYWRIGHT_TIMEOUT_MS = int(os.getenv("PLAYWRIGHT_TIMEOUT_MS", "60000"))
CARD_WAIT_MS = int(os.getenv("DEBENTURES_CARD_WAIT_MS", "10000"))
NOT_FOUND_WAIT_MS = int(os.getenv("DEBENTURES_NOT_FOUND_WAIT_MS", "1000"))
VIEWPORT: Tuple[int, int] = (1080, 1024)

# Capturas de tela de diagnóstico
SNAPSHOT_DIR = os.getenv("DEBENTURES_SNAPSHOT_DIR", ".")
SNAPSHOT_FALLBACK_NAME = "error"

# Proxy
PROXY_ENABLED = os.getenv("PROXY_ENABLED", "").strip().lower() in {"1", "true", "yes"}
PROXY_SERVER = os.getenv("PROXY_SERVER", "").strip()
PROXY_USERNAME = os.getenv("PROXY_USERNAME", "").strip()
PROXY_PASSWORD = os.getenv("PROXY_PASSWORD", "").strip()
