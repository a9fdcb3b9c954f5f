from __future__ import annotations

import json
from io import StringIO

import pytest
from django.conf import settings
from django.core.management import call_command
from django.core.management.base import CommandError

from citywatch.core.services.catalog import DEFAULT_CITIES


def test_seed_cities_reports_each_city(store) -> None:
    first = StringIO()
    second = StringIO()

    call_command("seed_cities", stdout=first)
    call_command("seed_cities", stdout=second)

    assert "City Soldeu inserted!" in first.getvalue()
    assert "City Soldeu already in db" in second.getvalue()
    assert len(store.list_city_names()) == len(DEFAULT_CITIES)


def test_sync_conditions_once(store, requests_mock) -> None:
    store.insert_city("Soldeu", 42.34, 1.4)
    requests_mock.get(
        settings.WEATHER_PROVIDER_URL,
        json={"current_weather": {"temperature": -3.5, "time": "2024-01-10T12:30"}},
    )
    out = StringIO()

    call_command("sync_conditions", "--once", stdout=out)
    call_command("sync_conditions", "--once", stdout=StringIO())

    report = json.loads(out.getvalue())
    assert report["inserted"] == ["Soldeu"]
    assert report["failed"] == {}
    assert len(store.find_city_with_conditions("Soldeu").conditions) == 1


def test_weather_fetch_prints_observation(store, requests_mock) -> None:
    requests_mock.get(
        settings.WEATHER_PROVIDER_URL,
        json={"current_weather": {"temperature": 7.25, "time": "2024-01-10T12:30"}},
    )
    out = StringIO()

    call_command("weather_fetch", "--lat", "42.3", "--lon", "1.3", stdout=out)

    assert json.loads(out.getvalue()) == {"temperature": 7.25, "time": "2024-01-10T12:30"}


def test_weather_fetch_fails_on_provider_error(store, requests_mock) -> None:
    requests_mock.get(settings.WEATHER_PROVIDER_URL, status_code=500, text="boom")

    with pytest.raises(CommandError):
        call_command("weather_fetch", "--lat", "42.3", "--lon", "1.3")
