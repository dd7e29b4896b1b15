from typing import Optional

from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends, HTTPException, Query, Request
import logging

from river_monitor.api.dependencies import (
    get_batch_collector,
    get_climate_client,
    get_imagery_client,
    get_weather_client,
)
from river_monitor.config.settings import Settings, get_settings
from river_monitor.exceptions import ServiceNotReadyError, ValidationError
from river_monitor.models.domain import DateInterval
from river_monitor.models.response import (
    ClimateDataResponse,
    CollectRiverDataResponse,
    RiverImageryResponse,
    WaterBodyDataset,
    WaterBodyImageryResponse,
    WaterHistoryResponse,
)
from river_monitor.services.batch_collector import BatchCollector
from river_monitor.services.climate_client import ClimateQueryClient
from river_monitor.services.datasets import LANDSAT_8_9, SENTINEL_2
from river_monitor.services.imagery_client import ImageryQueryClient
from river_monitor.services.weather_history import WeatherHistoryClient
from river_monitor.utils.async_helpers import CancellationToken
from river_monitor.utils.geometry import parse_polygon_json, point, polygon
from river_monitor.utils.intervals import Cadence
from river_monitor.utils.validation import (
    parse_date,
    parse_date_range,
    parse_float,
    validate_coordinates,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _imagery_window(start_date: str, end_date: str) -> DateInterval:
    start, end = parse_date_range(start_date, end_date)
    if start == end:
        raise ValidationError("startDate must be before endDate")
    return DateInterval(start=start, end=end)


def _missing(**params: Optional[str]) -> list:
    return [name for name, value in params.items() if value is None or value == ""]


@router.get("/api/river-imagery", response_model=RiverImageryResponse)
async def get_river_imagery(
    coordinates: str = Query(
        ..., description='Polygon coordinates as JSON array: "[[lon,lat],[lon,lat],...]"'
    ),
    start_date: str = Query("2023-01-01", alias="startDate", description="Start date (YYYY-MM-DD)"),
    end_date: str = Query("2023-12-31", alias="endDate", description="End date (YYYY-MM-DD)"),
    imagery: ImageryQueryClient = Depends(get_imagery_client),
    settings: Settings = Depends(get_settings),
) -> RiverImageryResponse:
    """
    Render MNDWI and natural-colour thumbnails for a river polygon.

    All Sentinel-2 images in the range below the configured cloud threshold
    are merged into one mosaic before rendering.
    """
    try:
        region = parse_polygon_json(coordinates)
        window = _imagery_window(start_date, end_date)

        logger.info(f"River imagery for {len(region.coordinates)} point polygon, {window}")

        match = await imagery.mosaic_best_in_range(
            region, window, settings.river_imagery_cloud_threshold
        )
        if not match.found:
            raise HTTPException(
                status_code=500,
                detail={
                    "error": "Failed to fetch imagery",
                    "details": f"No images found between {window.start} and {window.end}",
                },
            )

        mndwi_url = await imagery.mndwi_url(match.image, region)
        natural_url = await imagery.natural_color_url(match.image, region)

        return RiverImageryResponse(
            mndwi_image_url=mndwi_url,
            natural_image_url=natural_url,
            scale=settings.thumbnail_scale_meters,
        )

    except HTTPException:
        raise
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"River imagery retrieval failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch imagery", "details": str(e)},
        )


@router.get("/api/water-body-imagery", response_model=WaterBodyImageryResponse)
async def get_water_body_imagery(
    coordinates: str = Query(
        ..., description='Polygon coordinates as JSON array: "[[lon,lat],[lon,lat],...]"'
    ),
    start_date: str = Query("2023-01-01", alias="startDate", description="Start date (YYYY-MM-DD)"),
    end_date: str = Query("2023-12-31", alias="endDate", description="End date (YYYY-MM-DD)"),
    imagery: ImageryQueryClient = Depends(get_imagery_client),
    settings: Settings = Depends(get_settings),
) -> WaterBodyImageryResponse:
    """
    List imagery of a water body, falling back across datasets.

    Tried in order, the first yielding at least one image wins:
    1. Sentinel-2 over the requested range
    2. Landsat 8/9 over the requested range
    3. Sentinel-2 over the twelve months ending at ``endDate``
    """
    try:
        region = parse_polygon_json(coordinates)
        window = _imagery_window(start_date, end_date)
        extended = DateInterval(start=window.end - relativedelta(years=1), end=window.end)

        attempts = [(SENTINEL_2, window), (LANDSAT_8_9, window), (SENTINEL_2, extended)]

        for dataset, attempt_window in attempts:
            matches = await imagery.list_images(
                region,
                attempt_window,
                settings.water_body_cloud_threshold,
                settings.water_body_max_images,
                dataset,
            )
            if not matches:
                logger.info(f"No {dataset.name} images for {attempt_window}, trying next source")
                continue

            datasets = []
            for match in matches:
                datasets.append(
                    WaterBodyDataset(
                        image_id=match.image_id,
                        date=match.acquisition_date.isoformat() if match.acquisition_date else None,
                        cloud_cover=match.cloud_fraction,
                        natural_image_url=await imagery.natural_color_url(match.image, region, dataset),
                        mndwi_image_url=await imagery.mndwi_url(match.image, region, dataset),
                    )
                )

            return WaterBodyImageryResponse(
                total_datasets=len(datasets),
                source=dataset.name,
                start_date=attempt_window.start.isoformat(),
                end_date=attempt_window.end.isoformat(),
                datasets=datasets,
            )

        raise HTTPException(
            status_code=404,
            detail="No imagery found for this water body in any dataset or date range",
        )

    except HTTPException:
        raise
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Water body imagery retrieval failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch water body imagery", "details": str(e)},
        )


@router.get("/api/collect-river-data", response_model=CollectRiverDataResponse)
async def collect_river_data(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate", description="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, alias="endDate", description="End date (YYYY-MM-DD)"),
    cadence: str = Query("3m", description="Interval cadence: '3m' (months) or '15d' (days)"),
    collector: BatchCollector = Depends(get_batch_collector),
    settings: Settings = Depends(get_settings),
) -> CollectRiverDataResponse:
    """
    Collect water-index and climate statistics for the configured river reach.

    Each interval contributes one CSV row when an image is found. Intervals
    without imagery are skipped and failing intervals are reported in
    ``results`` without stopping the batch.
    """
    try:
        region = polygon(settings.batch_coordinates)
        start, end = parse_date_range(
            start_date or settings.batch_default_start_date,
            end_date or settings.batch_default_end_date,
        )
        step = Cadence.parse(cadence)
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        # Otherwise every interval would fail on its own
        request.app.state.session.ensure_ready()
    except ServiceNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))

    token = CancellationToken()
    request.app.state.active_batches.add(token)
    try:
        run = await collector.collect(region, start, end, step, cancel_token=token)

        return CollectRiverDataResponse(
            success=True,
            message=f"Processed {len(run.results)} intervals",
            csv_file_path=run.csv_file_path,
            results=[summary.to_response() for summary in run.results],
            cancelled=run.cancelled,
        )

    except Exception as e:
        logger.error(f"Error in collect-river-data: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to collect river data", "details": str(e)},
        )
    finally:
        request.app.state.active_batches.discard(token)


@router.get("/api/fetch-climate-data", response_model=ClimateDataResponse)
async def fetch_climate_data(
    lat: Optional[str] = Query(None, description="Latitude (WGS84)"),
    lon: Optional[str] = Query(None, description="Longitude (WGS84)"),
    date: Optional[str] = Query(None, description="Date (YYYY-MM-DD)"),
    climate: ClimateQueryClient = Depends(get_climate_client),
) -> ClimateDataResponse:
    """ERA5-Land climate averaged over the day before to the day after ``date``."""
    missing = _missing(lat=lat, lon=lon, date=date)
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required parameters: {', '.join(missing)}",
        )

    try:
        region = point(parse_float(lon, "lon"), parse_float(lat, "lat"))
        day = parse_date(date, "date")

        record = await climate.query(region, day)
        return ClimateDataResponse(success=True, climate_data=record)

    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Climate data retrieval failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch climate data", "details": str(e)},
        )


@router.get("/water-history", response_model=WaterHistoryResponse)
async def get_water_history(
    latitude: Optional[str] = Query(None, description="Latitude (WGS84)"),
    longitude: Optional[str] = Query(None, description="Longitude (WGS84)"),
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
    weather: WeatherHistoryClient = Depends(get_weather_client),
) -> WaterHistoryResponse:
    """Historical daily weather from the Open-Meteo archive, averaged per field."""
    missing = _missing(
        latitude=latitude, longitude=longitude, start_date=start_date, end_date=end_date
    )
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required parameters: {', '.join(missing)}",
        )

    try:
        lat = parse_float(latitude, "latitude")
        lon = parse_float(longitude, "longitude")
        is_valid, error = validate_coordinates(lat, lon)
        if not is_valid:
            raise ValidationError(error)
        start, end = parse_date_range(start_date, end_date)

        history = await weather.get_history(lat, lon, start, end)
        return WaterHistoryResponse(**history)

    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Water history retrieval failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch water history", "details": str(e)},
        )
