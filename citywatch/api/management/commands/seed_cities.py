from __future__ import annotations

from typing import Any

from django.core.management.base import BaseCommand

from citywatch.api.views import get_store
from citywatch.core.services.catalog import seed_cities


class Command(BaseCommand):
    help = "Insert the default list of cities, skipping those already stored"

    def handle(self, *args: Any, **options: Any) -> None:
        report = seed_cities(get_store())
        for name in report.inserted:
            self.stdout.write(f"City {name} inserted!")
        for name in report.existing:
            self.stdout.write(f"City {name} already in db")
        for name in report.failed:
            self.stderr.write(f"City {name} could not be inserted")
