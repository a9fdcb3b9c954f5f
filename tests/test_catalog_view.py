from __future__ import annotations

import pytest
from django.conf import settings
from django.test import Client


@pytest.fixture
def client(store) -> Client:
    return Client()


def _mock_weather(requests_mock, temperature=-3.5, time="2024-01-10T12:30", **kwargs):
    if kwargs:
        return requests_mock.get(settings.WEATHER_PROVIDER_URL, **kwargs)
    return requests_mock.get(
        settings.WEATHER_PROVIDER_URL,
        json={"current_weather": {"temperature": temperature, "time": time}},
    )


def test_menu_lists_routes(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert "/add_city/<name>/<latitude>/<longitude>" in response.json()["message"]


def test_add_city_then_read_conditions(client, requests_mock) -> None:
    _mock_weather(requests_mock)

    created = client.get("/add_city/Andorra%20la%20Vella/42.3/1.3")
    conditions = client.get("/conditions/Andorra%20la%20Vella")

    assert created.status_code == 201
    assert created.json()["message"] == "Inserted city Andorra la Vella!"
    assert conditions.status_code == 200
    assert conditions.json()["conditions"] == [
        {"date": "2024-01-10", "time": "12:30", "temperature": -3.5}
    ]


def test_add_city_accepts_negative_coordinates(client, requests_mock) -> None:
    _mock_weather(requests_mock)

    response = client.get("/add_city/Quito/-0.22/-78.51")

    assert response.status_code == 201
    assert requests_mock.last_request.qs["latitude"] == ["-0.22"]


def test_add_existing_city_conflicts(client, requests_mock, store) -> None:
    _mock_weather(requests_mock)
    client.get("/add_city/Soldeu/42.34/1.4")

    response = client.get("/add_city/Soldeu/42.34/1.4")

    assert response.status_code == 409
    assert "already exists" in response.json()["message"]
    assert store.list_city_names() == ["Soldeu"]


def test_add_city_with_provider_failure(client, requests_mock, store) -> None:
    _mock_weather(requests_mock, status_code=400, json={"error": True})

    response = client.get("/add_city/Nowhere/123.0/1.0")

    assert response.status_code == 502
    assert response.json()["outcome"] == "provider_error"
    assert store.list_city_names() == []


def test_remove_city(client, store) -> None:
    store.insert_city("Encamp", 42.32, 1.35)

    removed = client.get("/remove_city/Encamp")
    missing = client.get("/remove_city/Encamp")

    assert removed.status_code == 200
    assert removed.json()["message"] == "City Encamp removed!"
    assert missing.status_code == 404
    assert missing.json()["message"] == "No city Encamp found to remove!"


def test_city_names(client, store) -> None:
    for name in ("Soldeu", "Encamp", "Andorra la Vella"):
        store.insert_city(name, 42.3, 1.3)

    response = client.get("/city_names")

    assert response.status_code == 200
    assert response.json()["cities"] == ["Andorra la Vella", "Encamp", "Soldeu"]


def test_conditions_for_unknown_city(client) -> None:
    response = client.get("/conditions/Atlantis")

    assert response.status_code == 404
    assert response.json()["message"].startswith("Couldn't find Atlantis")


def test_non_numeric_coordinates_do_not_route(client) -> None:
    response = client.get("/add_city/Soldeu/north/1.4")

    assert response.status_code == 404


@pytest.mark.parametrize(
    "latitude, longitude, expected",
    [
        (".5", "1.", ("0.5", "1.0")),
        ("1e1", "-2.5E0", ("10.0", "-2.5")),
        ("+42", "1", ("42.0", "1.0")),
    ],
)
def test_add_city_accepts_any_decimal_notation(client, requests_mock, latitude, longitude, expected):
    _mock_weather(requests_mock)

    response = client.get(f"/add_city/Somewhere/{latitude}/{longitude}")

    assert response.status_code == 201
    query = requests_mock.last_request.qs
    assert (query["latitude"][0], query["longitude"][0]) == expected
