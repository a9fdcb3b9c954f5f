"""Django settings for the city weather catalog."""
from __future__ import annotations

from pathlib import Path
import os

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def env(name: str, default: str | None = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    value = os.environ.get(name, default)
    if value is None:
        raise ImproperlyConfigured(f"Environment variable {name} is required")
    return value


def env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default) == "1"


SECRET_KEY = env("DJANGO_SECRET_KEY")
DEBUG = env_flag("DJANGO_DEBUG")
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "citywatch.api.apps.CatalogApiConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "citywatch.urls"

WSGI_APPLICATION = "citywatch.wsgi.application"

# Cities and conditions live in the catalog store, not in the Django ORM.
DATABASES: dict = {}
CATALOG_DATABASE_URL = env("CITYWATCH_DATABASE_URL", f"sqlite:///{BASE_DIR / 'citywatch.db'}")

WEATHER_PROVIDER_URL = env("CITYWATCH_PROVIDER_URL", "https://api.open-meteo.com/v1/forecast")
WEATHER_PROVIDER_TIMEZONE = env("CITYWATCH_PROVIDER_TIMEZONE", "CET")
_provider_timeout = os.environ.get("CITYWATCH_PROVIDER_TIMEOUT")
WEATHER_PROVIDER_TIMEOUT = float(_provider_timeout) if _provider_timeout else None

SYNC_PERIOD_SECONDS = float(env("CITYWATCH_SYNC_PERIOD", "60"))
SYNC_STARTUP_DELAY_SECONDS = float(env("CITYWATCH_SYNC_STARTUP_DELAY", "0.1"))
SYNC_WORKERS = int(env("CITYWATCH_SYNC_WORKERS", "1"))
SYNC_AUTOSTART = env_flag("CITYWATCH_SYNC_AUTOSTART", "1")
SEED_ON_STARTUP = env_flag("CITYWATCH_SEED_ON_STARTUP", "1")

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
}

LOG_LEVEL = env("CITYWATCH_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "urllib3": {"level": "WARNING"},
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True
