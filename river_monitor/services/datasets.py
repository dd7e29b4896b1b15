"""
Imagery dataset descriptors and thumbnail render specifications.

Band names differ between Sentinel-2 and Landsat Collection 2; everything that
computes an index or renders a thumbnail reads them from here.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ImageryDataset(BaseModel):
    """Optical imagery collection and the bands used for water indices."""

    model_config = ConfigDict(frozen=True)

    name: str
    collection_ids: Tuple[str, ...]
    cloud_property: str
    green_band: str
    nir_band: str
    swir_band: str
    rgb_bands: Tuple[str, str, str]
    natural_min: float
    natural_max: float
    native_scale: int


SENTINEL_2 = ImageryDataset(
    name="Sentinel-2",
    collection_ids=("COPERNICUS/S2_SR_HARMONIZED",),
    cloud_property="CLOUDY_PIXEL_PERCENTAGE",
    green_band="B3",
    nir_band="B8",
    swir_band="B11",
    rgb_bands=("B4", "B3", "B2"),
    natural_min=0,
    natural_max=3000,
    native_scale=10,
)

LANDSAT_8_9 = ImageryDataset(
    name="Landsat 8/9",
    collection_ids=("LANDSAT/LC08/C02/T1_L2", "LANDSAT/LC09/C02/T1_L2"),
    cloud_property="CLOUD_COVER",
    green_band="SR_B3",
    nir_band="SR_B5",
    swir_band="SR_B6",
    rgb_bands=("SR_B4", "SR_B3", "SR_B2"),
    # Collection 2 L2 surface reflectance digital numbers
    natural_min=7000,
    natural_max=20000,
    native_scale=30,
)

ERA5_LAND_HOURLY = "ECMWF/ERA5_LAND/HOURLY"

MNDWI_PALETTE = [
    "#f7fbff",
    "#deebf7",
    "#c6dbef",
    "#9ecae1",
    "#6baed6",
    "#4292c6",
    "#2171b5",
    "#08519c",
    "#08306b",
]


class ThumbnailSpec(BaseModel):
    """Visualization parameters for a PNG thumbnail."""

    model_config = ConfigDict(frozen=True)

    bands: Tuple[str, ...]
    min: float
    max: float
    scale: int
    gamma: Optional[float] = None
    palette: Optional[List[str]] = None
    # When set, render normalizedDifference(bands) named ``bands[0]``
    normalized_difference: Optional[Tuple[str, str]] = None
    clip: bool = False

    def vis_params(self) -> dict:
        params = {"bands": list(self.bands), "min": self.min, "max": self.max}
        if self.gamma is not None:
            params["gamma"] = self.gamma
        if self.palette:
            params["palette"] = list(self.palette)
        return params


def natural_color_spec(dataset: ImageryDataset, scale: int) -> ThumbnailSpec:
    return ThumbnailSpec(
        bands=dataset.rgb_bands,
        min=dataset.natural_min,
        max=dataset.natural_max,
        gamma=1.3,
        scale=scale,
    )


def mndwi_spec(dataset: ImageryDataset, scale: int) -> ThumbnailSpec:
    return ThumbnailSpec(
        bands=("MNDWI",),
        min=-0.5,
        max=0.5,
        palette=MNDWI_PALETTE,
        scale=scale,
        normalized_difference=(dataset.green_band, dataset.swir_band),
        clip=True,
    )
