import logging
from typing import Any, Dict, Optional

from river_monitor.config.settings import Settings, get_settings
from river_monitor.models.domain import RegionGeometry, WaterIndexStats
from river_monitor.services.datasets import SENTINEL_2, ImageryDataset
from river_monitor.services.interfaces import SpatialReducer
from river_monitor.utils.async_helpers import call_upstream

logger = logging.getLogger(__name__)

# reducer output suffix -> WaterIndexStats field suffix
_STATISTICS = {"mean": "mean", "stdDev": "std_dev", "min": "min", "max": "max"}


def stats_from_reduction(raw: Dict[str, Optional[float]]) -> WaterIndexStats:
    """Map ``NDWI_mean``-style reducer keys onto WaterIndexStats; gaps stay None."""
    values = {}
    for index in ("NDWI", "MNDWI"):
        for reducer_key, field_suffix in _STATISTICS.items():
            value = raw.get(f"{index}_{reducer_key}")
            values[f"{index.lower()}_{field_suffix}"] = float(value) if value is not None else None
    return WaterIndexStats(**values)


class WaterIndexCalculator:
    """
    Computes NDWI and MNDWI statistics for an image over a region.

    NDWI = (green - NIR) / (green + NIR)
    MNDWI = (green - SWIR) / (green + SWIR)

    Both lie in [-1, 1]. Statistics Earth Engine cannot compute (for example
    when the region has no valid pixels) are returned as ``None``.
    """

    def __init__(self, reducer: SpatialReducer, settings: Optional[Settings] = None):
        self.reducer = reducer
        self.settings = settings or get_settings()

    async def compute(
        self, image: Any, region: RegionGeometry, dataset: ImageryDataset = SENTINEL_2
    ) -> WaterIndexStats:
        """Statistics at the configured scale, never finer than the sensor's resolution."""
        indices = {
            "NDWI": (dataset.green_band, dataset.nir_band),
            "MNDWI": (dataset.green_band, dataset.swir_band),
        }
        raw = await call_upstream(
            self.reducer.reduce_normalized_differences,
            image,
            region,
            indices,
            max(self.settings.index_scale_meters, dataset.native_scale),
            self.settings.max_pixels,
        )
        stats = stats_from_reduction(raw or {})
        logger.debug(f"Water index statistics: {stats}")
        return stats
