"""Catalog operations exposed to the HTTP layer."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from citywatch.core.entities import City
from citywatch.core.models import CityStore, ConstraintViolation, NotFound, StoreError
from citywatch.core.providers.base import ProviderError


logger = logging.getLogger(__name__)

DEFAULT_CITIES: Sequence[Tuple[str, float, float]] = (
    ("Andorra la Vella", 42.3, 1.3),
    ("El Serrat", 42.37, 1.33),
    ("Encamp", 42.32, 1.35),
    ("Les Escaldes", 42.3, 1.32),
    ("Sant Julià de Lòria", 42.28, 1.29),
    ("Soldeu", 42.34, 1.4),
)


class Outcome(str, Enum):
    OK = "ok"
    CREATED = "created"
    PARTIAL = "partial"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PROVIDER_ERROR = "provider_error"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class CatalogResponse:
    outcome: Outcome
    message: str
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.OK, Outcome.CREATED)


@dataclass(frozen=True)
class ConditionsLine:
    date: str
    time: str
    temperature: float

    def render(self) -> str:
        return f"{self.date} {self.time}\t{self.temperature}"


@dataclass
class SeedReport:
    inserted: List[str] = field(default_factory=list)
    existing: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def split_timestamp(value: str) -> Tuple[str, str]:
    """Split ``2024-01-10T12:30`` into ``("2024-01-10", "12:30")``.

    A value without ``T`` is kept whole as the date with an empty time, so a
    reading with an unexpected format still shows up in the listing.
    """
    date, separator, hour = value.partition("T")
    if not separator:
        return value, ""
    return date, hour


def conditions_lines(city: City) -> List[ConditionsLine]:
    lines = []
    for conditions in city.conditions or ():
        date, hour = split_timestamp(conditions.time)
        lines.append(ConditionsLine(date=date, time=hour, temperature=conditions.temperature))
    return lines


class CatalogService:
    """Translate catalog requests into store/provider calls.

    Failures are never raised to the caller; each operation returns a
    :class:`CatalogResponse` whose ``message`` can be rendered as-is.
    """

    def __init__(self, store: CityStore, provider: Any) -> None:
        self.store = store
        self.provider = provider

    def register_city(self, name: str, latitude: float, longitude: float) -> CatalogResponse:
        # A city is only registered once the provider accepts its coordinates
        try:
            observation = self.provider.fetch_current(latitude, longitude)
        except ProviderError as exc:
            logger.warning("Weather lookup for new city %s failed: %s", name, exc)
            return CatalogResponse(Outcome.PROVIDER_ERROR, f"Couldn't get weather info: {exc}")

        try:
            self.store.insert_city(name, latitude, longitude)
        except ConstraintViolation:
            return CatalogResponse(Outcome.CONFLICT, f"City {name} already exists")
        except StoreError as exc:
            logger.error("Failed to insert city %s: %s", name, exc)
            return CatalogResponse(Outcome.STORE_ERROR, str(exc))

        try:
            self.store.insert_conditions(name, observation.temperature, observation.time)
        except StoreError as exc:
            logger.error("City %s inserted without conditions: %s", name, exc)
            return CatalogResponse(
                Outcome.PARTIAL,
                f"Inserted city {name} but couldn't insert conditions: {exc}",
            )
        logger.info("Inserted city %s", name)
        return CatalogResponse(Outcome.CREATED, f"Inserted city {name}!")

    def remove_city(self, name: str) -> CatalogResponse:
        try:
            removed = self.store.delete_city(name)
        except StoreError as exc:
            logger.error("Failed to remove city %s: %s", name, exc)
            return CatalogResponse(Outcome.STORE_ERROR, str(exc))
        if removed == 0:
            return CatalogResponse(Outcome.NOT_FOUND, f"No city {name} found to remove!", data=0)
        logger.info("Removed city %s", name)
        return CatalogResponse(Outcome.OK, f"City {name} removed!", data=removed)

    def city_names(self) -> CatalogResponse:
        try:
            names = self.store.list_city_names()
        except StoreError as exc:
            logger.error("Failed to list city names: %s", exc)
            return CatalogResponse(Outcome.STORE_ERROR, str(exc))
        return CatalogResponse(Outcome.OK, "\n".join(names), data=names)

    def conditions_for(self, name: str) -> CatalogResponse:
        try:
            city = self.store.find_city_with_conditions(name)
        except NotFound as exc:
            return CatalogResponse(Outcome.NOT_FOUND, f"Couldn't find {name}: {exc}")
        except StoreError as exc:
            logger.error("Failed to load conditions for %s: %s", name, exc)
            return CatalogResponse(Outcome.STORE_ERROR, f"Couldn't find {name}: {exc}")

        lines = conditions_lines(city)
        message = f"Conditions for {name}:\n\n" + "".join(f"{line.render()}\n" for line in lines)
        return CatalogResponse(Outcome.OK, message, data=lines)


def seed_cities(
    store: CityStore,
    cities: Optional[Iterable[Tuple[str, float, float]]] = None,
) -> SeedReport:
    """Insert the default cities, treating existing names as expected."""
    report = SeedReport()
    for name, latitude, longitude in cities if cities is not None else DEFAULT_CITIES:
        try:
            store.insert_city(name, latitude, longitude)
        except ConstraintViolation:
            logger.info("City %s already in db", name)
            report.existing.append(name)
        except StoreError as exc:
            logger.error("Unexpected error seeding %s: %s", name, exc)
            report.failed.append(name)
        else:
            logger.info("City %s inserted!", name)
            report.inserted.append(name)
    return report


__all__ = [
    "CatalogResponse",
    "CatalogService",
    "ConditionsLine",
    "DEFAULT_CITIES",
    "Outcome",
    "SeedReport",
    "conditions_lines",
    "seed_cities",
    "split_timestamp",
]
