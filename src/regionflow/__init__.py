"""Regionflow: spatial autocorrelation analysis for areal (polygon) data."""

__version__ = "0.1.0"

from regionflow.core.region_frame import RegionFrame
from regionflow.core.schema import RegionMetadata, RegionSchema

__all__ = [
    "RegionFrame",
    "RegionSchema",
    "RegionMetadata",
    "__version__",
]
