"""
Configurações para CI (GitHub Actions e outros pipelines).

Nenhum acesso à planilha, ao Redis ou aos sites de origem: tudo é mockado nos testes.
"""

from __future__ import annotations

from .base import *  # noqa: F401, F403

DEBUG = False
SECRET_KEY = "ci-secret-key-not-for-production"

# Desabilita integrações externas durante testes
CELERY_TASK_ALWAYS_EAGER = True  # Executa tasks síncronamente (sem Redis)
CELERY_TASK_EAGER_PROPAGATES = True

DEBENTURES_GOOGLE_CREDENTIALS = ""
DEBENTURES_SPREADSHEET_ID = "ci-spreadsheet"

# Testes não devem poluir a saída com os logs de scraping
LOGGING["loggers"]["debentures"]["level"] = "CRITICAL"  # noqa: F405
