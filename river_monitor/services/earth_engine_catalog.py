import ee
import logging
from datetime import date, datetime, timezone
from functools import wraps
from typing import Any, Dict, List, Optional, Sequence, Tuple

from river_monitor.exceptions import UpstreamError
from river_monitor.models.domain import DateInterval, ImageryMatch, RegionGeometry
from river_monitor.services.datasets import ERA5_LAND_HOURLY, ImageryDataset, ThumbnailSpec
from river_monitor.services.earth_engine_session import EarthEngineSession
from river_monitor.services.interfaces import ImageryCatalog, SpatialReducer

logger = logging.getLogger(__name__)


def _upstream(method):
    """Check the session, and report Earth Engine failures as UpstreamError."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        self.session.ensure_ready()
        try:
            return method(self, *args, **kwargs)
        except (ee.EEException, OSError) as e:
            logger.error(f"Earth Engine call {method.__name__} failed: {e}")
            raise UpstreamError(str(e)) from e

    return wrapper


def to_ee_geometry(region: RegionGeometry) -> ee.Geometry:
    """Convert a validated region into an Earth Engine geometry."""
    if region.is_point:
        return ee.Geometry.Point(region.coordinates[0])
    return ee.Geometry.Polygon([region.coordinates])


def _parse_time_start(properties: Dict[str, Any]) -> Optional[date]:
    time_start = properties.get("system:time_start")
    if time_start is None:
        return None
    # system:time_start is milliseconds since the Unix epoch
    return datetime.fromtimestamp(int(time_start) / 1000, tz=timezone.utc).date()


class EarthEngineCatalog(ImageryCatalog, SpatialReducer):
    """Production catalog and reducer backed by the Earth Engine API."""

    def __init__(self, session: EarthEngineSession):
        self.session = session

    def _collection(
        self,
        geometry: ee.Geometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
    ) -> ee.ImageCollection:
        collection = ee.ImageCollection(dataset.collection_ids[0])
        for collection_id in dataset.collection_ids[1:]:
            collection = collection.merge(ee.ImageCollection(collection_id))

        return (
            collection.filterDate(interval.start.isoformat(), interval.end.isoformat())
            .filterBounds(geometry)
            .filter(ee.Filter.lt(dataset.cloud_property, cloud_threshold))
            .sort(dataset.cloud_property)
        )

    @_upstream
    def list_images(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
        limit: int,
    ) -> List[ImageryMatch]:
        geometry = to_ee_geometry(region)
        collection = self._collection(geometry, interval, dataset, cloud_threshold).limit(limit)
        collection_info = collection.getInfo()

        matches = []
        for image_info in collection_info.get("features", []):
            properties = image_info.get("properties", {})
            image_id = image_info.get("id", "")
            matches.append(
                ImageryMatch(
                    found=True,
                    acquisition_date=_parse_time_start(properties),
                    image=ee.Image(image_id),
                    image_id=image_id,
                    cloud_fraction=properties.get(dataset.cloud_property),
                )
            )

        logger.info(
            f"Found {len(matches)} {dataset.name} images for {interval} below {cloud_threshold}% cloud"
        )
        return matches

    @_upstream
    def find_best_image(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
    ) -> ImageryMatch:
        geometry = to_ee_geometry(region)
        collection = self._collection(geometry, interval, dataset, cloud_threshold)

        if collection.size().getInfo() == 0:
            return ImageryMatch.not_found()

        best_image = ee.Image(collection.first())
        metadata = ee.Dictionary(
            {
                "date": ee.Date(best_image.get("system:time_start")).format("YYYY-MM-dd"),
                "cloud": best_image.get(dataset.cloud_property),
                "id": best_image.id(),
            }
        ).getInfo()

        return ImageryMatch(
            found=True,
            acquisition_date=date.fromisoformat(metadata["date"]),
            image=best_image,
            image_id=metadata.get("id"),
            cloud_fraction=metadata.get("cloud"),
        )

    @_upstream
    def mosaic(
        self,
        region: RegionGeometry,
        interval: DateInterval,
        dataset: ImageryDataset,
        cloud_threshold: float,
    ) -> ImageryMatch:
        geometry = to_ee_geometry(region)
        collection = self._collection(geometry, interval, dataset, cloud_threshold)

        if collection.size().getInfo() == 0:
            return ImageryMatch.not_found()

        return ImageryMatch(found=True, image=collection.mosaic())

    @_upstream
    def render_thumbnail(self, image: Any, region: RegionGeometry, spec: ThumbnailSpec) -> str:
        geometry = to_ee_geometry(region)
        rendered = ee.Image(image)

        if spec.normalized_difference:
            rendered = rendered.normalizedDifference(list(spec.normalized_difference)).rename(
                spec.bands[0]
            )
        if spec.clip:
            # Clip to remove padding outside the region
            rendered = rendered.clip(geometry)

        return rendered.getThumbURL(
            {
                **spec.vis_params(),
                "region": geometry,
                "scale": spec.scale,
                "format": "png",
            }
        )

    @_upstream
    def reduce_normalized_differences(
        self,
        image: Any,
        region: RegionGeometry,
        indices: Dict[str, Tuple[str, str]],
        scale: int,
        max_pixels: float,
    ) -> Dict[str, Optional[float]]:
        geometry = to_ee_geometry(region)
        source = ee.Image(image)

        index_bands = [
            source.normalizedDifference([band_a, band_b]).rename(name)
            for name, (band_a, band_b) in indices.items()
        ]

        stats = ee.Image.cat(index_bands).reduceRegion(
            reducer=ee.Reducer.mean()
            .combine(ee.Reducer.stdDev(), sharedInputs=True)
            .combine(ee.Reducer.minMax(), sharedInputs=True),
            geometry=geometry,
            scale=scale,
            maxPixels=max_pixels,
        ).getInfo() or {}

        # Single-band reductions come back without the band prefix
        if len(indices) == 1:
            (name,) = indices
            stats = {f"{name}_{key}": value for key, value in stats.items()}
        return stats

    @_upstream
    def reduce_climate_window(
        self,
        region: RegionGeometry,
        start: date,
        end: date,
        bands: Sequence[str],
        scale: int,
    ) -> Optional[Dict[str, Optional[float]]]:
        geometry = to_ee_geometry(region)
        collection = (
            ee.ImageCollection(ERA5_LAND_HOURLY)
            .filterDate(start.isoformat(), end.isoformat())
            .filterBounds(geometry)
        )

        if collection.size().getInfo() == 0:
            logger.warning(f"No climate data available between {start} and {end}")
            return None

        data = collection.mean().reduceRegion(
            reducer=ee.Reducer.mean(),
            geometry=geometry,
            scale=scale,
            bestEffort=True,
        ).getInfo() or {}

        return {band: data.get(band) for band in bands}
