from __future__ import annotations

import logging
import os
import sys
from typing import Mapping, Sequence

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)

MANAGEMENT_PROGRAMS = ("manage.py", "django-admin", "django-admin.py")


def is_serving_process(argv: Sequence[str], environ: Mapping[str, str]) -> bool:
    """Tell whether this process is the one answering HTTP requests.

    Under a WSGI server every worker serves. Through ``manage.py`` only
    ``runserver`` serves, and with the autoreloader only its child process
    (``RUN_MAIN=true``) does; the parent just watches files.
    """
    program = argv[0] if argv else ""
    is_management = os.path.basename(program) in MANAGEMENT_PROGRAMS or program.replace(
        "\\", "/"
    ).endswith("django/__main__.py")
    if not is_management:
        return True
    if len(argv) < 2 or argv[1] != "runserver":
        return False
    return "--noreload" in argv or environ.get("RUN_MAIN") == "true"


class CatalogApiConfig(AppConfig):
    name = "citywatch.api"
    label = "catalog_api"
    verbose_name = "City weather catalog"

    def ready(self) -> None:
        from citywatch.api import views
        from citywatch.core.services.catalog import seed_cities

        # Opening the store here makes an unreachable database fatal at startup.
        views.reset_wiring()
        store = views.get_store()

        if not is_serving_process(sys.argv, os.environ):
            return
        if settings.SEED_ON_STARTUP:
            report = seed_cities(store)
            logger.info("Seeded cities: %d inserted, %d existing", len(report.inserted), len(report.existing))
        if settings.SYNC_AUTOSTART:
            views.get_synchronizer().start()
