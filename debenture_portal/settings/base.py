"""Base Django settings shared across all environments."""

from __future__ import annotations

from pathlib import Path

import environ
from celery.schedules import crontab

# --------------------------------------------------------------------------------------
# Paths & environment
# --------------------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent

env = environ.Env(
    DJANGO_DEBUG=(bool, False),
)

ENV_FILE = BASE_DIR / ".env"
if ENV_FILE.exists():
    environ.Env.read_env(str(ENV_FILE))

# --------------------------------------------------------------------------------------
# Core settings
# --------------------------------------------------------------------------------------

SECRET_KEY = env("DJANGO_SECRET_KEY", default="django-insecure-change-me")
DEBUG = env.bool("DJANGO_DEBUG", default=False)
ALLOWED_HOSTS: list[str] = []

# --------------------------------------------------------------------------------------
# Applications
# --------------------------------------------------------------------------------------

DJANGO_APPS: list[str] = []

THIRD_PARTY_APPS: list[str] = []

LOCAL_APPS: list[str] = [
    "debentures",
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

# --------------------------------------------------------------------------------------
# Database
# --------------------------------------------------------------------------------------

# A planilha é a única fonte de verdade: nenhum banco é configurado.
DATABASES: dict[str, dict] = {}

# --------------------------------------------------------------------------------------
# Internationalisation
# --------------------------------------------------------------------------------------

LANGUAGE_CODE = env("DJANGO_LANGUAGE_CODE", default="pt-br")
TIME_ZONE = env("DJANGO_TIME_ZONE", default="America/Sao_Paulo")
USE_I18N = True
USE_TZ = True

# --------------------------------------------------------------------------------------
# Spreadsheet
# --------------------------------------------------------------------------------------

DEBENTURES_GOOGLE_CREDENTIALS = env("DEBENTURES_GOOGLE_CREDENTIALS", default="")
DEBENTURES_SPREADSHEET_ID = env("DEBENTURES_SPREADSHEET_ID", default="")
DEBENTURES_SHEET_NAME = env("DEBENTURES_SHEET_NAME", default="DataSheet")
DEBENTURES_SHEET_GID = env.int("DEBENTURES_SHEET_GID", default=0)

# --------------------------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------------------------

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s [%(levelname)s] %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": env("DJANGO_LOG_LEVEL", default="INFO"),
    },
    "loggers": {
        "debentures": {
            "handlers": ["console"],
            "level": env("DEBENTURES_LOG_LEVEL", default="INFO"),
            "propagate": False,
        }
    },
}

# Celery
CELERY_BROKER_URL = env("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default=CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = env.bool("CELERY_TASK_ALWAYS_EAGER", default=False)
CELERY_TIMEZONE = TIME_ZONE
CELERY_ENABLE_UTC = USE_TZ
CELERY_BEAT_SCHEDULE = {
    "debentures-update-weekdays": {
        "task": "debentures.tasks.update_nominal_prices",
        "schedule": crontab(minute=0, hour=20, day_of_week="mon-fri"),
    },
}
