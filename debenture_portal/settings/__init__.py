"""
Settings package initializer.

The actual settings module is selected via the `DJANGO_SETTINGS_MODULE`
environment variable. Management commands default to the development
configuration (`debenture_portal.settings.dev`), while scheduled workers
explicitly point to `debenture_portal.settings.prod`.
"""

from __future__ import annotations

import os

DEFAULT_SETTINGS_MODULE = "debenture_portal.settings.dev"

# Do not override if the variable is already defined externally.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", DEFAULT_SETTINGS_MODULE)

__all__ = ["DEFAULT_SETTINGS_MODULE"]
