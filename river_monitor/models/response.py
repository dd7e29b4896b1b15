from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field

from river_monitor.models.domain import ClimateRecord


class RiverImageryResponse(BaseModel):
    """Rendered MNDWI and natural-colour thumbnails for a region."""

    model_config = ConfigDict(populate_by_name=True)

    mndwi_image_url: str = Field(alias="mndwiImageUrl")
    natural_image_url: str = Field(alias="naturalImageUrl")
    scale: int


class WaterBodyDataset(BaseModel):
    """One image of the water-body imagery listing."""

    model_config = ConfigDict(populate_by_name=True)

    image_id: Optional[str] = Field(default=None, alias="imageId")
    date: Optional[str] = None
    cloud_cover: Optional[float] = Field(default=None, alias="cloudCover")
    natural_image_url: str = Field(alias="naturalImageUrl")
    mndwi_image_url: str = Field(alias="mndwiImageUrl")


class WaterBodyImageryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_datasets: int = Field(alias="totalDatasets")
    source: str
    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")
    datasets: List[WaterBodyDataset]


class CollectRiverDataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    csv_file_path: str = Field(alias="csvFilePath")
    results: List[Dict[str, Any]]
    cancelled: bool = False


class ClimateDataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    climate_data: Optional[ClimateRecord] = Field(default=None, alias="climateData")


class WaterHistoryResponse(BaseModel):
    latitude: float
    longitude: float
    start_date: str
    end_date: str
    days: int
    averages: Dict[str, Optional[float]]


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    earth_engine: str
