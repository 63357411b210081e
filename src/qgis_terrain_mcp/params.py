"""Parameter models for the typed terrain-analysis dispatch methods.

File paths are expected to be absolute already; nothing here resolves them.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OutputFormat = Literal["geotiff", "gpkg", "png", "tif"]


class BaseAnalysisParams(BaseModel):
    # Unknown keys are forwarded to the service untouched.
    model_config = ConfigDict(extra="allow")

    dem_path: str = Field(min_length=1)
    output_path: str = Field(min_length=1)
    output_format: OutputFormat | None = None


class SlopeAnalysisParams(BaseAnalysisParams):
    slope_units: Literal["degrees", "percent"] | None = None
    class_ranges: list[float] | None = None
    class_labels: list[str] | None = None
    stormwater_suitability: bool | None = None


class FlowPathAnalysisParams(BaseAnalysisParams):
    pour_points: list[tuple[float, float]] = Field(min_length=1)


class WatershedAnalysisParams(BaseAnalysisParams):
    pour_points: list[tuple[float, float]] = Field(min_length=1)
    snap_distance: float | None = Field(default=None, ge=0)
    min_basin_size: float | None = Field(default=None, ge=0)


class AspectAnalysisParams(BaseAnalysisParams):
    categories: int | None = Field(default=None, gt=0)
    include_flat: bool | None = None
    category_labels: list[str] | None = None


class ObserverPoint(BaseModel):
    x: float
    y: float
    height: float | None = None
    id: str | None = None


class ViewshedAnalysisParams(BaseAnalysisParams):
    observer_points: list[ObserverPoint] = Field(min_length=1)
    radius: float | None = Field(default=None, gt=0)
    observer_height: float | None = None
