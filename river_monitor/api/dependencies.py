"""FastAPI dependency providers built on the objects created at startup."""

from fastapi import Depends, Request

from river_monitor.config.settings import Settings, get_settings
from river_monitor.services.batch_collector import BatchCollector
from river_monitor.services.climate_client import ClimateQueryClient
from river_monitor.services.earth_engine_catalog import EarthEngineCatalog
from river_monitor.services.earth_engine_session import EarthEngineSession
from river_monitor.services.imagery_client import ImageryQueryClient
from river_monitor.services.water_indices import WaterIndexCalculator
from river_monitor.services.weather_history import WeatherHistoryClient


def get_session(request: Request) -> EarthEngineSession:
    return request.app.state.session


def get_catalog(session: EarthEngineSession = Depends(get_session)) -> EarthEngineCatalog:
    """Earth Engine catalog. Readiness is checked per call, after input validation."""
    return EarthEngineCatalog(session)


def get_imagery_client(
    catalog=Depends(get_catalog), settings: Settings = Depends(get_settings)
) -> ImageryQueryClient:
    return ImageryQueryClient(catalog, settings)


def get_water_index_calculator(
    catalog=Depends(get_catalog), settings: Settings = Depends(get_settings)
) -> WaterIndexCalculator:
    return WaterIndexCalculator(catalog, settings)


def get_climate_client(
    catalog=Depends(get_catalog), settings: Settings = Depends(get_settings)
) -> ClimateQueryClient:
    return ClimateQueryClient(catalog, settings)


def get_batch_collector(
    imagery: ImageryQueryClient = Depends(get_imagery_client),
    water_indices: WaterIndexCalculator = Depends(get_water_index_calculator),
    climate: ClimateQueryClient = Depends(get_climate_client),
    settings: Settings = Depends(get_settings),
) -> BatchCollector:
    return BatchCollector(imagery, water_indices, climate, settings)


def get_weather_client(request: Request) -> WeatherHistoryClient:
    return request.app.state.weather_client
