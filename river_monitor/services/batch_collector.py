"""
Interval-driven batch collection.

For each interval, in order: find the least cloudy image, fetch climate and
water-index statistics for it, render a natural-colour thumbnail, and append
one CSV row. Intervals without imagery are skipped; an interval that fails is
reported and the batch moves on. Intervals are never processed concurrently.
"""

import logging
from datetime import date
from typing import List, Optional

from river_monitor.config.settings import Settings, get_settings
from river_monitor.models.domain import (
    BatchRun,
    DateInterval,
    IntervalResult,
    IntervalStatus,
    IntervalSummary,
    RegionGeometry,
)
from river_monitor.services.climate_client import ClimateQueryClient
from river_monitor.services.imagery_client import ImageryQueryClient
from river_monitor.services.water_indices import WaterIndexCalculator
from river_monitor.storage.csv_sink import CsvSink
from river_monitor.utils.async_helpers import CancellationToken, run_in_executor
from river_monitor.utils.intervals import Cadence, generate_intervals

logger = logging.getLogger(__name__)

NO_IMAGES_MESSAGE = "No images found for this interval"


class BatchCollector:
    """Sequential fetch, transform and write loop over date intervals."""

    def __init__(
        self,
        imagery: ImageryQueryClient,
        water_indices: WaterIndexCalculator,
        climate: ClimateQueryClient,
        settings: Optional[Settings] = None,
    ):
        self.imagery = imagery
        self.water_indices = water_indices
        self.climate = climate
        self.settings = settings or get_settings()

    async def collect(
        self,
        region: RegionGeometry,
        start: date,
        end: date,
        cadence: Cadence,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchRun:
        """Generate intervals for ``[start, end]`` and run them into a new CSV file."""
        intervals = generate_intervals(start, end, cadence)
        logger.info(f"Processing {len(intervals)} intervals from {start} to {end}")

        sink = CsvSink.open(self.settings.output_dir, self.settings.csv_file_prefix)
        return await self.run(region, intervals, sink, cancel_token)

    async def run(
        self,
        region: RegionGeometry,
        intervals: List[DateInterval],
        sink: CsvSink,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchRun:
        """
        Process ``intervals`` in order, writing completed ones to ``sink``.

        The sink is closed exactly once when the run ends, whatever the
        outcome. Rows already written stay valid if later intervals fail.
        """
        run = BatchRun(csv_file_path=sink.file_path)

        try:
            for position, interval in enumerate(intervals):
                if cancel_token is not None and cancel_token.is_cancelled:
                    logger.warning(
                        f"Batch cancelled ({cancel_token.reason}); "
                        f"{len(intervals) - position} intervals not processed"
                    )
                    run.cancelled = True
                    run.results.extend(
                        IntervalSummary(
                            interval=pending,
                            status=IntervalStatus.CANCELLED,
                            success=False,
                            message=f"Batch cancelled: {cancel_token.reason}",
                        )
                        for pending in intervals[position:]
                    )
                    break

                run.results.append(await self._process_interval(region, interval, sink))
        finally:
            sink.close()

        logger.info(
            f"Batch finished: {run.count(IntervalStatus.COMPLETED)} completed, "
            f"{run.count(IntervalStatus.SKIPPED)} skipped, "
            f"{run.count(IntervalStatus.FAILED)} failed, "
            f"{run.count(IntervalStatus.CANCELLED)} cancelled"
        )
        return run

    async def _process_interval(
        self, region: RegionGeometry, interval: DateInterval, sink: CsvSink
    ) -> IntervalSummary:
        logger.info(f"Processing interval: {interval}")

        try:
            match = await self.imagery.find_best_image(
                region, interval, self.settings.batch_cloud_threshold
            )
            if not match.found:
                logger.info(f"No images found for interval {interval}")
                return IntervalSummary(
                    interval=interval,
                    status=IntervalStatus.SKIPPED,
                    success=False,
                    message=NO_IMAGES_MESSAGE,
                )

            climate = await self.climate.query(region, match.acquisition_date)
            if climate is None:
                reason = f"No climate data available around {match.acquisition_date}"
                logger.error(f"Error processing interval {interval}: {reason}")
                return IntervalSummary(
                    interval=interval,
                    status=IntervalStatus.FAILED,
                    success=False,
                    error=reason,
                )

            water_indices = await self.water_indices.compute(match.image, region)
            natural_url = await self.imagery.natural_color_url(match.image, region)

            result = IntervalResult(
                interval=interval,
                image_date=match.acquisition_date,
                cloud_cover=match.cloud_fraction,
                natural_image_url=natural_url,
                water_indices=water_indices,
                climate=climate,
            )
            await run_in_executor(sink.write, result)

        except Exception as e:
            logger.error(f"Error processing interval {interval}: {e}")
            return IntervalSummary(
                interval=interval,
                status=IntervalStatus.FAILED,
                success=False,
                error=str(e) or type(e).__name__,
            )

        logger.info(f"Successfully processed data for {match.acquisition_date}")
        return IntervalSummary(
            interval=interval,
            status=IntervalStatus.COMPLETED,
            success=True,
            image_date=match.acquisition_date,
            natural_image_url=natural_url,
        )
