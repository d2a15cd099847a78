"""Output adapters that materialise RegionFrames to files."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from regionflow.core.loaders import to_geodataframe, write_regions
from regionflow.core.region_frame import RegionFrame
from regionflow.core.utils import get_logger

logger = get_logger(__name__)


class ParquetOutputConfig(BaseModel):
    path: str = Field(..., description="Destination .parquet file")


class GeoJSONOutputConfig(BaseModel):
    path: str = Field(..., description="Destination .geojson file")


class BaseOutputAdapter(ABC):
    """Abstract base class for materialising RegionFrames to external targets."""

    @abstractmethod
    def write(self, region_frame: RegionFrame, **kwargs: Any) -> None:
        """Persist the provided RegionFrame to the adapter's target."""
        raise NotImplementedError

    def describe(self) -> str | None:  # pragma: no cover - simple accessor
        """Optional human-readable description of the adapter."""
        return None


class ParquetOutputAdapter(BaseOutputAdapter):
    """Write regions as Parquet with WKT geometry plus a metadata sidecar."""

    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, region_frame: RegionFrame, **kwargs: Any) -> None:
        write_regions(region_frame, self.path)

    def describe(self) -> str | None:
        return f"Parquet + .meta.json at {self.path}"


class GeoJSONOutputAdapter(BaseOutputAdapter):
    """Write regions as a GeoJSON FeatureCollection through geopandas."""

    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, region_frame: RegionFrame, **kwargs: Any) -> None:
        gdf = to_geodataframe(region_frame)
        path = Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        gdf.to_file(path, driver="GeoJSON")
        logger.info(f"Saved {len(gdf)} regions as GeoJSON to {path}")

    def describe(self) -> str | None:
        return f"GeoJSON FeatureCollection at {self.path}"
