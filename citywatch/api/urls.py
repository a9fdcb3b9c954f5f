"""API URL configuration."""
from __future__ import annotations

from django.urls import path, register_converter

from citywatch.api.views import AddCityView, CityNamesView, ConditionsView, MenuView, RemoveCityView


class CoordinateConverter:
    regex = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"

    def to_python(self, value: str) -> float:
        return float(value)

    def to_url(self, value: float) -> str:
        return str(value)


register_converter(CoordinateConverter, "coord")

urlpatterns = [
    path("", MenuView.as_view(), name="menu"),
    path("conditions/<str:name>", ConditionsView.as_view(), name="conditions"),
    path("add_city/<str:name>/<coord:latitude>/<coord:longitude>", AddCityView.as_view(), name="add-city"),
    path("remove_city/<str:name>", RemoveCityView.as_view(), name="remove-city"),
    path("city_names", CityNamesView.as_view(), name="city-names"),
]
