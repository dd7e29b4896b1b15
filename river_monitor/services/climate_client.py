"""
ERA5-Land climate around a date, averaged over a three-day window.

Values are reported in display units (degrees C, mm, hPa), not in the
dataset's native K, m and Pa, so CSV files written by this service are not
unit-compatible with raw ERA5-Land exports.
"""

import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from river_monitor.config.settings import Settings, get_settings
from river_monitor.models.domain import ClimateRecord, RegionGeometry
from river_monitor.services.interfaces import SpatialReducer
from river_monitor.utils.async_helpers import call_upstream

logger = logging.getLogger(__name__)


def _kelvin_to_celsius(value: float) -> float:
    return value - 273.15


def _meters_to_millimeters(value: float) -> float:
    return value * 1000


def _pascal_to_hectopascal(value: float) -> float:
    return value / 100


def _identity(value: float) -> float:
    return value


# ClimateRecord field -> (ERA5-Land band, unit conversion)
CLIMATE_BANDS: List[Tuple[str, str, Callable[[float], float]]] = [
    ("mean_temperature", "temperature_2m", _kelvin_to_celsius),
    ("max_temperature", "temperature_2m_max", _kelvin_to_celsius),
    ("min_temperature", "temperature_2m_min", _kelvin_to_celsius),
    ("precipitation", "total_precipitation", _meters_to_millimeters),
    ("pressure", "surface_pressure", _pascal_to_hectopascal),
    ("soil_moisture", "volumetric_soil_water_layer_1", _identity),
    ("runoff", "surface_runoff", _meters_to_millimeters),
]


def record_from_reduction(raw: Dict[str, Optional[float]]) -> ClimateRecord:
    """
    Build a ClimateRecord from reduced band values.

    A band that is absent (or null) reads as exactly 0; present values are
    converted to display units.
    """
    values = {}
    for field, band, convert in CLIMATE_BANDS:
        value = raw.get(band)
        values[field] = convert(float(value)) if value is not None else 0.0
    return ClimateRecord(**values)


class ClimateQueryClient:
    """Averaged ERA5-Land meteorology around a date."""

    def __init__(self, reducer: SpatialReducer, settings: Optional[Settings] = None):
        self.reducer = reducer
        self.settings = settings or get_settings()

    async def query(self, region: RegionGeometry, day: date) -> Optional[ClimateRecord]:
        """
        Climate for ``day`` averaged over ``[day - 1, day + 1]``.

        Returns ``None`` when the window has no source images.
        """
        # Pad the window to tolerate sparse temporal coverage
        window_start = day - timedelta(days=1)
        window_end = day + timedelta(days=1)

        raw = await call_upstream(
            self.reducer.reduce_climate_window,
            region,
            window_start,
            window_end,
            [band for _, band, _ in CLIMATE_BANDS],
            self.settings.climate_scale_meters,
        )
        if raw is None:
            logger.warning(f"No climate data available around {day}")
            return None

        return record_from_reduction(raw)
