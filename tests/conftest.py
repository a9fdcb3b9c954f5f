from __future__ import annotations

import pytest

from django.test import override_settings
from requests_mock import Mocker

from citywatch.api import views
from citywatch.core.entities import Observation
from citywatch.core.providers.base import ProviderError


@pytest.fixture
def requests_mock():
    with Mocker() as mock:
        yield mock


@pytest.fixture
def store(tmp_path):
    with override_settings(CATALOG_DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}"):
        views.reset_wiring()
        yield views.get_store()
    views.reset_wiring()


class FakeProvider:
    """Provider double keyed by coordinates; unknown coordinates fail."""

    def __init__(self, readings=None, time: str = "2024-01-10T12:30") -> None:
        self.readings = dict(readings or {})
        self.time = time
        self.calls = []

    def fetch_current(self, latitude: float, longitude: float) -> Observation:
        self.calls.append((latitude, longitude))
        reading = self.readings.get((latitude, longitude))
        if reading is None:
            raise ProviderError(f"no data for ({latitude}, {longitude})")
        if isinstance(reading, Observation):
            return reading
        return Observation(temperature=reading, time=self.time)


@pytest.fixture
def fake_provider():
    return FakeProvider()
