"""WSGI entry point for the city weather catalog."""
from __future__ import annotations

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "citywatch.settings")

application = get_wsgi_application()
