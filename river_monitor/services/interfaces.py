"""
Abstractions over the external imagery service.

The query clients and the batch collector only talk to these interfaces.
``EarthEngineCatalog`` is the production implementation; tests substitute
in-memory fakes. All methods are blocking and are awaited through
``call_upstream``.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from river_monitor.models.domain import DateInterval, ImageryMatch, RegionGeometry
from river_monitor.services.datasets import ImageryDataset, ThumbnailSpec


class ImageryCatalog(ABC):
    """Catalog search and rendering over an optical imagery collection."""

    @abstractmethod
    def list_images(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
        limit: int,
    ) -> List[ImageryMatch]:
        """Qualifying images, least cloudy first, at most ``limit``."""

    @abstractmethod
    def find_best_image(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
    ) -> ImageryMatch:
        """Least cloudy qualifying image, or ``ImageryMatch.not_found()``."""

    @abstractmethod
    def mosaic(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
    ) -> ImageryMatch:
        """Composite of all qualifying images, or ``ImageryMatch.not_found()``."""

    @abstractmethod
    def render_thumbnail(self, image: Any, region: RegionGeometry, spec: ThumbnailSpec) -> str:
        """PNG thumbnail URL of ``image`` over ``region``."""


class SpatialReducer(ABC):
    """Spatial aggregation of per-pixel values over a region."""

    @abstractmethod
    def reduce_normalized_differences(
        self,
        image: Any,
        region: RegionGeometry,
        indices: Dict[str, Tuple[str, str]],
        scale: int,
        max_pixels: float,
    ) -> Dict[str, Optional[float]]:
        """
        Mean, stdDev, min and max of each ``name -> (band_a, band_b)`` index.

        Keys follow the reducer output naming: ``<name>_mean``,
        ``<name>_stdDev``, ``<name>_min``, ``<name>_max``. Statistics the
        service could not compute are absent or ``None``.
        """

    @abstractmethod
    def reduce_climate_window(
        self,
        region: RegionGeometry,
        start: date,
        end: date,
        bands: Sequence[str],
        scale: int,
    ) -> Optional[Dict[str, Optional[float]]]:
        """
        Mean of the climate images in ``[start, end)`` reduced over ``region``.

        Returns ``None`` when the window holds no images.
        """
