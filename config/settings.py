"""
DOS – Django Settings (Infrastructure Only)
============================================
Django hosts the thin stock-report adapter. The reconciliation engine
is framework-free; Django does not dictate its structure.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("DOS_SECRET_KEY", "dos-dev-key-replace-before-deployment")

DEBUG = os.environ.get("DOS_DEBUG", "1") == "1"

ALLOWED_HOSTS = ["testserver", "localhost", "127.0.0.1"]

# ── Installed Apps ────────────────────────────────────────────
# The adapter serves JSON only; no models are registered.
INSTALLED_APPS = [
    "django.contrib.contenttypes",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL & WSGI ────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
# Unused by the stock adapter; Django requires a default.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Stock Reconciliation ──────────────────────────────────────
# Reference values. fallback_location_id is the default consolidation
# location charged for dispatched orders with no assigned vehicle.
DOS_RECONCILIATION = {
    "baseline": {"warehouse": 500, "vehicle": 0},
    "fallback_location_id": "1",
    "low_stock_threshold": 10,
    "strict_references": False,
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "dos": {
            "handlers": ["console"],
            "level": os.environ.get("DOS_LOG_LEVEL", "INFO"),
        },
    },
}
