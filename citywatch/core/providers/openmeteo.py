from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .base import ProviderError, WeatherProvider
from ..entities import Observation


class CurrentWeather(BaseModel):
    model_config = ConfigDict(extra="ignore")

    temperature: float
    time: str

    @field_validator("temperature", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        # lax float parsing would accept "12.5" and True
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("temperature must be a number")
        return value

    @field_validator("time", mode="before")
    @classmethod
    def _require_string(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value:
            raise ValueError("time must be a non-empty string")
        return value


class ForecastResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_weather: CurrentWeather


@dataclass(frozen=True)
class DecodedWeather:
    """Outcome of decoding a forecast body: an observation or an error text."""

    observation: Optional[Observation] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.observation is not None


def decode_current_weather(payload: Any) -> DecodedWeather:
    """Decode ``{"current_weather": {"temperature": .., "time": ..}}``.

    Missing or mistyped fields produce an error result; nothing is defaulted.
    """
    if not isinstance(payload, dict):
        return DecodedWeather(error=f"expected a JSON object, got {type(payload).__name__}")
    try:
        parsed = ForecastResponse.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return DecodedWeather(error=problems)
    current = parsed.current_weather
    return DecodedWeather(observation=Observation(temperature=current.temperature, time=current.time))


class OpenMeteoProvider(WeatherProvider):
    base_url = "https://api.open-meteo.com/v1/forecast"
    timezone = "CET"

    def __init__(self, base_url: Optional[str] = None, timezone: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url or self.base_url
        self.timezone = timezone or self.timezone
        self._log = logging.getLogger(self.__class__.__name__)

    def fetch_current(self, latitude: float, longitude: float) -> Observation:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current_weather": "true",
            "timezone": self.timezone,
        }
        response = self._request("GET", self.base_url, params=params)
        decoded = decode_current_weather(self._json(response))
        if not decoded.ok:
            self._log.error("Unexpected response for (%s, %s): %s", latitude, longitude, decoded.error)
            raise ProviderError(f"unexpected response: {decoded.error}")
        return decoded.observation

    # helpers ------------------------------------------------------------
    def _json(self, response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise ProviderError("invalid json", cause=exc) from exc


__all__ = ["CurrentWeather", "DecodedWeather", "ForecastResponse", "OpenMeteoProvider", "decode_current_weather"]
