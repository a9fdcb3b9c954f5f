"""REST API views for the city weather catalog."""
from __future__ import annotations

from functools import lru_cache

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from citywatch.core import models
from citywatch.core.providers.base import RequestConfig
from citywatch.core.providers.openmeteo import OpenMeteoProvider
from citywatch.core.services.catalog import CatalogResponse, CatalogService, Outcome
from citywatch.sync.synchronizer import SyncConfig, Synchronizer

MENU = (
    "Routes:\n"
    "    /conditions/<name>\n"
    "    /add_city/<name>/<latitude>/<longitude>\n"
    "    /remove_city/<name>\n"
    "    /city_names"
)

STATUS_BY_OUTCOME = {
    Outcome.OK: status.HTTP_200_OK,
    Outcome.CREATED: status.HTTP_201_CREATED,
    Outcome.PARTIAL: status.HTTP_207_MULTI_STATUS,
    Outcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Outcome.CONFLICT: status.HTTP_409_CONFLICT,
    Outcome.PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
    Outcome.STORE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# Composition root: one store handle shared by the API and the synchronizer.
@lru_cache(maxsize=1)
def get_store() -> models.CityStore:
    return models.CityStore(models.configure_engine(settings.CATALOG_DATABASE_URL))


@lru_cache(maxsize=1)
def get_provider() -> OpenMeteoProvider:
    return OpenMeteoProvider(
        base_url=settings.WEATHER_PROVIDER_URL,
        timezone=settings.WEATHER_PROVIDER_TIMEZONE,
        request_config=RequestConfig(timeout=settings.WEATHER_PROVIDER_TIMEOUT),
    )


@lru_cache(maxsize=1)
def get_catalog_service() -> CatalogService:
    return CatalogService(store=get_store(), provider=get_provider())


@lru_cache(maxsize=1)
def get_synchronizer() -> Synchronizer:
    return Synchronizer(
        store=get_store(),
        provider=get_provider(),
        config=SyncConfig.from_settings(settings),
    )


def reset_wiring() -> None:
    """Forget cached handles, e.g. after the engine has been reconfigured."""
    for factory in (get_store, get_provider, get_catalog_service, get_synchronizer):
        factory.cache_clear()


def _render(result: CatalogResponse, **extra) -> Response:
    payload = {"outcome": result.outcome.value, "message": result.message}
    payload.update(extra)
    return Response(payload, status=STATUS_BY_OUTCOME[result.outcome])


class MenuView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response({"message": MENU}, status=status.HTTP_200_OK)


class ConditionsView(APIView):
    """Return every recorded observation of one city."""

    permission_classes = [AllowAny]

    def get(self, request, name: str, *args, **kwargs):
        result = get_catalog_service().conditions_for(name)
        if not result.ok:
            return _render(result)
        conditions = [
            {"date": line.date, "time": line.time, "temperature": line.temperature}
            for line in result.data
        ]
        return _render(result, city=name, conditions=conditions)


class AddCityView(APIView):
    """Register a city after checking the provider knows its coordinates."""

    permission_classes = [AllowAny]

    def get(self, request, name: str, latitude: float, longitude: float, *args, **kwargs):
        result = get_catalog_service().register_city(name, latitude, longitude)
        return _render(result, city=name)


class RemoveCityView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, name: str, *args, **kwargs):
        result = get_catalog_service().remove_city(name)
        return _render(result, city=name)


class CityNamesView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        result = get_catalog_service().city_names()
        if not result.ok:
            return _render(result)
        return _render(result, cities=result.data)
