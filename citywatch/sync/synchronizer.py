"""Background loop that keeps every city's conditions up to date."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from citywatch.core.entities import City
from citywatch.core.models import CityStore, ConstraintViolation, StoreError
from citywatch.core.providers.base import ProviderError

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


class CityResult(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    PROVIDER_FAILED = "provider_failed"
    STORE_FAILED = "store_failed"


@dataclass
class SyncConfig:
    period_seconds: float = 60.0
    startup_delay_seconds: float = 0.1
    workers: int = 1

    @classmethod
    def from_settings(cls, settings: Any) -> "SyncConfig":
        return cls(
            period_seconds=float(settings.SYNC_PERIOD_SECONDS),
            startup_delay_seconds=float(settings.SYNC_STARTUP_DELAY_SECONDS),
            workers=int(settings.SYNC_WORKERS),
        )


@dataclass
class SyncReport:
    inserted: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    listing_error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "inserted": list(self.inserted),
            "duplicates": list(self.duplicates),
            "failed": dict(self.failed),
            "listing_error": self.listing_error,
        }


class Synchronizer:
    """Fetch and store current weather for every known city, forever.

    One pass never fails as a whole: provider and store errors are logged per
    city and the pass moves on.  Duplicate observations (the provider has not
    published a new timestamp yet) are expected and skipped silently.
    """

    def __init__(
        self,
        store: CityStore,
        provider: Any,
        config: Optional[SyncConfig] = None,
        wait: Optional[Callable[[float], Any]] = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self.config = config or SyncConfig()
        self._stop = threading.Event()
        self._wait = wait or self._stop.wait
        self._state = SyncState.IDLE
        self._thread: Optional[threading.Thread] = None
        self.passes = 0
        self.last_report: Optional[SyncReport] = None

    @property
    def state(self) -> SyncState:
        return self._state

    # Public API ---------------------------------------------------------
    def sync_once(self) -> SyncReport:
        report = SyncReport()
        self._state = SyncState.SYNCING
        try:
            try:
                cities = self.store.list_cities(include_conditions=False)
            except StoreError as exc:
                logger.error("Could not list cities, skipping this pass: %s", exc)
                report.listing_error = str(exc)
                return report

            if self.config.workers > 1 and len(cities) > 1:
                with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                    outcomes = list(executor.map(self._sync_city, cities))
            else:
                outcomes = [self._sync_city(city) for city in cities]

            for city, (result, detail) in zip(cities, outcomes):
                if result is CityResult.INSERTED:
                    report.inserted.append(city.name)
                elif result is CityResult.DUPLICATE:
                    report.duplicates.append(city.name)
                else:
                    report.failed[city.name] = detail or result.value
            return report
        finally:
            self.passes += 1
            self.last_report = report
            self._state = SyncState.IDLE

    def run_forever(self) -> None:
        self._wait(self.config.startup_delay_seconds)
        while not self._stop.is_set():
            logger.info("Syncing conditions (pass %s)", self.passes + 1)
            try:
                report = self.sync_once()
            except Exception:
                logger.exception("Loop isn't working")
            else:
                logger.info(
                    "Pass finished: %d inserted, %d unchanged, %d failed",
                    len(report.inserted),
                    len(report.duplicates),
                    len(report.failed),
                )
            self._wait(self.config.period_seconds)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="citywatch-sync", daemon=True)
        self._thread.start()
        logger.info("Synchronizer started (period=%ss)", self.config.period_seconds)
        return self._thread

    def stop(self) -> None:
        """Stop at the next sleep boundary; a running pass completes first."""
        self._stop.set()

    # helpers ------------------------------------------------------------
    def _sync_city(self, city: City):
        try:
            observation = self.provider.fetch_current(city.latitude, city.longitude)
        except ProviderError as exc:
            logger.warning("Couldn't fetch weather for %s: %s", city.name, exc)
            return CityResult.PROVIDER_FAILED, str(exc)
        except Exception as exc:
            logger.exception("Unexpected error fetching weather for %s", city.name)
            return CityResult.PROVIDER_FAILED, repr(exc)

        try:
            self.store.insert_conditions(city.name, observation.temperature, observation.time)
        except ConstraintViolation:
            logger.debug("Conditions for %s at %s already stored", city.name, observation.time)
            return CityResult.DUPLICATE, None
        except StoreError as exc:
            logger.error("Unexpected error storing conditions for %s: %s", city.name, exc)
            return CityResult.STORE_FAILED, str(exc)
        except Exception as exc:
            logger.exception("Unexpected error storing conditions for %s", city.name)
            return CityResult.STORE_FAILED, repr(exc)

        logger.info("Inserted new conditions for %s", city.name)
        return CityResult.INSERTED, None


__all__ = ["CityResult", "SyncConfig", "SyncReport", "SyncState", "Synchronizer"]
