from datetime import date
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DateInterval(BaseModel):
    """Contiguous date range used as the unit of batch collection."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")
        return self

    def as_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


class RegionGeometry(BaseModel):
    """Polygon ring (explicitly closed) or single point, in [lon, lat] order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["polygon", "point"]
    coordinates: List[List[float]]

    @property
    def is_point(self) -> bool:
        return self.kind == "point"


class ImageryMatch(BaseModel):
    """Outcome of an imagery query. ``found=False`` is the NotFound variant."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    found: bool
    acquisition_date: Optional[date] = None
    image: Any = None
    image_id: Optional[str] = None
    cloud_fraction: Optional[float] = None

    @classmethod
    def not_found(cls) -> "ImageryMatch":
        return cls(found=False)


class WaterIndexStats(BaseModel):
    """NDWI / MNDWI summary statistics. A ``None`` field is indeterminate."""

    ndwi_mean: Optional[float] = None
    ndwi_std_dev: Optional[float] = None
    ndwi_min: Optional[float] = None
    ndwi_max: Optional[float] = None
    mndwi_mean: Optional[float] = None
    mndwi_std_dev: Optional[float] = None
    mndwi_min: Optional[float] = None
    mndwi_max: Optional[float] = None


class ClimateRecord(BaseModel):
    """Window-averaged meteorological variables; absent bands read as 0."""

    mean_temperature: float = 0.0  # degrees C
    max_temperature: float = 0.0  # degrees C
    min_temperature: float = 0.0  # degrees C
    precipitation: float = 0.0  # mm
    pressure: float = 0.0  # hPa
    soil_moisture: float = 0.0  # m3/m3
    runoff: float = 0.0  # mm


CSV_COLUMNS = [
    "interval_start",
    "interval_end",
    "image_date",
    "cloud_cover",
    "natural_image_url",
    "mean_temperature",
    "max_temperature",
    "min_temperature",
    "precipitation",
    "pressure",
    "soil_moisture",
    "runoff",
    "ndwi_mean",
    "ndwi_std_dev",
    "ndwi_min",
    "ndwi_max",
    "mndwi_mean",
    "mndwi_std_dev",
    "mndwi_min",
    "mndwi_max",
    "success",
    "failure_reason",
]


class IntervalResult(BaseModel):
    """One row of the collected dataset."""

    interval: DateInterval
    image_date: Optional[date] = None
    cloud_cover: Optional[float] = None
    natural_image_url: Optional[str] = None
    water_indices: WaterIndexStats = Field(default_factory=WaterIndexStats)
    climate: ClimateRecord = Field(default_factory=ClimateRecord)
    success: bool = True
    failure_reason: Optional[str] = None

    def to_csv_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "interval_start": self.interval.start.isoformat(),
            "interval_end": self.interval.end.isoformat(),
            "image_date": self.image_date.isoformat() if self.image_date else None,
            "cloud_cover": self.cloud_cover,
            "natural_image_url": self.natural_image_url,
            "success": self.success,
            "failure_reason": self.failure_reason,
        }
        row.update(self.climate.model_dump())
        row.update(self.water_indices.model_dump())
        return {column: row[column] for column in CSV_COLUMNS}


class IntervalStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class IntervalSummary(BaseModel):
    """Per-interval entry of the batch response."""

    model_config = ConfigDict(populate_by_name=True)

    interval: DateInterval
    status: IntervalStatus
    success: bool
    image_date: Optional[date] = Field(default=None, serialization_alias="imageDate")
    natural_image_url: Optional[str] = Field(default=None, serialization_alias="naturalImageUrl")
    message: Optional[str] = None
    error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BatchRun(BaseModel):
    """Outcome of one batch collection."""

    csv_file_path: str
    results: List[IntervalSummary] = Field(default_factory=list)
    cancelled: bool = False

    def count(self, status: IntervalStatus) -> int:
        return sum(1 for summary in self.results if summary.status == status)
