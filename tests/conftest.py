"""Shared fixtures: fast retry settings and an in-memory Earth Engine stand-in."""

from datetime import date
from typing import Any, Dict, List, Optional

import pytest

from river_monitor.config.settings import settings as app_settings
from river_monitor.models.domain import DateInterval, ImageryMatch, RegionGeometry
from river_monitor.services.datasets import ImageryDataset, ThumbnailSpec
from river_monitor.services.interfaces import ImageryCatalog, SpatialReducer
from river_monitor.utils import async_helpers
from river_monitor.utils.geometry import polygon

VARANASI = [[83.00, 25.20], [83.00, 25.40], [83.30, 25.40], [83.30, 25.20]]

INDEX_STATS = {
    "NDWI_mean": 0.12,
    "NDWI_stdDev": 0.05,
    "NDWI_min": -0.4,
    "NDWI_max": 0.61,
    "MNDWI_mean": 0.2,
    "MNDWI_stdDev": 0.07,
    "MNDWI_min": -0.3,
    "MNDWI_max": 0.72,
}

CLIMATE_BANDS = {
    "temperature_2m": 298.15,
    "temperature_2m_max": 303.15,
    "temperature_2m_min": 293.15,
    "total_precipitation": 0.002,
    "surface_pressure": 100500.0,
    "volumetric_soil_water_layer_1": 0.31,
    "surface_runoff": 0.0001,
}


class FakeCatalog(ImageryCatalog, SpatialReducer):
    """
    Canned catalog. ``outcomes`` maps an interval start date to an
    ImageryMatch or an exception to raise; other intervals get a found image
    dated on the interval start.
    """

    def __init__(
        self,
        outcomes: Optional[Dict[date, Any]] = None,
        index_stats: Optional[Dict[str, Optional[float]]] = None,
        climate: Optional[Dict[str, Optional[float]]] = CLIMATE_BANDS,
        listings: Optional[Dict[str, List[ImageryMatch]]] = None,
        mosaic_match: Optional[ImageryMatch] = None,
    ):
        self.outcomes = outcomes or {}
        self.index_stats = dict(INDEX_STATS) if index_stats is None else index_stats
        self.climate = climate
        self.listings = listings or {}
        self.mosaic_match = mosaic_match or ImageryMatch(found=True, image="mosaic")
        self.best_image_calls: List[DateInterval] = []
        self.climate_windows: List[tuple] = []
        self.list_calls: List[tuple] = []
        self.reduction_scales: List[int] = []

    def list_images(self, region, interval, dataset: ImageryDataset, cloud_threshold, limit):
        self.list_calls.append((dataset.name, interval, cloud_threshold))
        return self.listings.get(dataset.name, [])[:limit]

    def find_best_image(self, region, interval, dataset, cloud_threshold) -> ImageryMatch:
        self.best_image_calls.append(interval)
        outcome = self.outcomes.get(interval.start)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return outcome
        return ImageryMatch(
            found=True,
            acquisition_date=interval.start,
            image=f"img-{interval.start.isoformat()}",
            image_id=f"COPERNICUS/S2_SR_HARMONIZED/{interval.start:%Y%m%d}",
            cloud_fraction=3.5,
        )

    def mosaic(self, region, interval, dataset, cloud_threshold) -> ImageryMatch:
        return self.mosaic_match

    def render_thumbnail(self, image: Any, region: RegionGeometry, spec: ThumbnailSpec) -> str:
        return f"https://thumbs.test/{image}/{spec.bands[0]}.png"

    def reduce_normalized_differences(self, image, region, indices, scale, max_pixels):
        self.reduction_scales.append(scale)
        return self.index_stats

    def reduce_climate_window(self, region, start, end, bands, scale):
        self.climate_windows.append((start, end))
        return None if self.climate is None else dict(self.climate)


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch, tmp_path):
    """No retry backoff, no Earth Engine login, CSV output in a temp dir."""
    monkeypatch.setattr(app_settings, "upstream_retry_min_wait", 0)
    monkeypatch.setattr(app_settings, "upstream_retry_max_wait", 0)
    monkeypatch.setattr(app_settings, "upstream_timeout_seconds", 5)
    monkeypatch.setattr(app_settings, "gee_initialize_on_startup", False)
    monkeypatch.setattr(app_settings, "output_dir", str(tmp_path / "csv"))
    yield app_settings
    async_helpers.shutdown_executor()


@pytest.fixture
def region() -> RegionGeometry:
    return polygon(VARANASI)


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()
