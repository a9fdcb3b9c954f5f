from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Observation:
    """Current reading decoded from the weather provider.

    ``time`` is kept in the provider's native format (ISO-8601 without a
    timezone suffix for Open-Meteo) so that it can act as part of the
    uniqueness key of stored conditions.
    """

    temperature: float
    time: str


@dataclass(frozen=True)
class Conditions:
    temperature: float
    time: str


@dataclass(frozen=True)
class City:
    name: str
    latitude: float
    longitude: float
    conditions: Optional[Tuple[Conditions, ...]] = None


__all__ = ["City", "Conditions", "Observation"]
