import logging
from typing import Any, List, Optional

from river_monitor.config.settings import Settings, get_settings
from river_monitor.models.domain import DateInterval, ImageryMatch, RegionGeometry
from river_monitor.services.datasets import (
    SENTINEL_2,
    ImageryDataset,
    mndwi_spec,
    natural_color_spec,
)
from river_monitor.services.interfaces import ImageryCatalog
from river_monitor.utils.async_helpers import call_upstream

logger = logging.getLogger(__name__)


class ImageryQueryClient:
    """Finds, composites and renders optical imagery for a region."""

    def __init__(self, catalog: ImageryCatalog, settings: Optional[Settings] = None):
        self.catalog = catalog
        self.settings = settings or get_settings()

    async def find_best_image(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        cloud_threshold: float,
        dataset: ImageryDataset = SENTINEL_2,
    ) -> ImageryMatch:
        """
        Least cloudy image in ``[interval.start, interval.end)``.

        Returns ``ImageryMatch.not_found()`` when no image is below
        ``cloud_threshold``; that is an expected outcome, not an error.
        """
        match = await call_upstream(
            self.catalog.find_best_image, region, interval, dataset, cloud_threshold
        )
        if match.found:
            logger.info(
                f"Best {dataset.name} image for {interval}: {match.acquisition_date} "
                f"({match.cloud_fraction}% cloud)"
            )
        return match

    async def mosaic_best_in_range(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        cloud_threshold: float,
        dataset: ImageryDataset = SENTINEL_2,
    ) -> ImageryMatch:
        """Composite of every qualifying image in the range."""
        return await call_upstream(
            self.catalog.mosaic, region, interval, dataset, cloud_threshold
        )

    async def list_images(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        cloud_threshold: float,
        limit: int,
        dataset: ImageryDataset = SENTINEL_2,
    ) -> List[ImageryMatch]:
        return await call_upstream(
            self.catalog.list_images, region, interval, dataset, cloud_threshold, limit
        )

    async def natural_color_url(
        self, image: Any, region: RegionGeometry, dataset: ImageryDataset = SENTINEL_2
    ) -> str:
        spec = natural_color_spec(dataset, self.settings.thumbnail_scale_meters)
        return await call_upstream(self.catalog.render_thumbnail, image, region, spec)

    async def mndwi_url(
        self, image: Any, region: RegionGeometry, dataset: ImageryDataset = SENTINEL_2
    ) -> str:
        spec = mndwi_spec(dataset, self.settings.thumbnail_scale_meters)
        return await call_upstream(self.catalog.render_thumbnail, image, region, spec)
