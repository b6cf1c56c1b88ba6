"""Development settings."""

from __future__ import annotations

from .base import *  # noqa

DEBUG = env.bool("DJANGO_DEBUG", default=True)

SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="django-insecure-dev-secret-key",
)

# Dev local sem Redis: tasks executam no próprio processo
CELERY_TASK_ALWAYS_EAGER = env.bool("CELERY_TASK_ALWAYS_EAGER", default=True)

LOGGING["loggers"]["debentures"]["level"] = env(  # noqa: F405
    "DEBENTURES_LOG_LEVEL", default="DEBUG"
)
