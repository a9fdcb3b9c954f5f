"""Management command to fetch one observation using the same stack as the API."""
from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from citywatch.api.views import get_provider
from citywatch.core.providers.base import ProviderError


class Command(BaseCommand):
    help = "Fetch the current weather for the provided coordinates"

    def add_arguments(self, parser) -> None:
        parser.add_argument("--lat", type=float, required=True, help="Latitude")
        parser.add_argument("--lon", type=float, required=True, help="Longitude")

    def handle(self, *args: Any, **options: Any) -> None:
        try:
            observation = get_provider().fetch_current(options["lat"], options["lon"])
        except ProviderError as exc:
            raise CommandError(f"Couldn't get weather info: {exc}") from exc
        self.stdout.write(json.dumps(asdict(observation)))
