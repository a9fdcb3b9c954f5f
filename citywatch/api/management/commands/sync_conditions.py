"""Run the conditions synchronizer in the foreground."""
from __future__ import annotations

import json
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand

from citywatch.api.views import get_provider, get_store
from citywatch.sync.synchronizer import SyncConfig, Synchronizer


class Command(BaseCommand):
    help = "Poll the weather provider for every city and store new conditions"

    def add_arguments(self, parser) -> None:
        parser.add_argument("--once", action="store_true", help="run a single pass and print its report")
        parser.add_argument("--period", type=float, default=None, help="seconds between passes")
        parser.add_argument("--startup-delay", type=float, default=None, help="grace period before the first pass")
        parser.add_argument("--workers", type=int, default=None, help="cities fetched in parallel")

    def handle(self, *args: Any, **options: Any) -> None:
        config = SyncConfig.from_settings(settings)
        if options["period"] is not None:
            config.period_seconds = options["period"]
        if options["startup_delay"] is not None:
            config.startup_delay_seconds = options["startup_delay"]
        if options["workers"] is not None:
            config.workers = max(1, options["workers"])

        synchronizer = Synchronizer(store=get_store(), provider=get_provider(), config=config)
        if options["once"]:
            report = synchronizer.sync_once()
            self.stdout.write(json.dumps(report.as_dict(), ensure_ascii=False))
            return

        self.stdout.write(f"Syncing every {config.period_seconds}s, press Ctrl+C to stop")
        try:
            synchronizer.run_forever()
        except KeyboardInterrupt:
            self.stdout.write("Stopped")
