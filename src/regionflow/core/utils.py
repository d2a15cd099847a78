"""Utility functions and helpers."""

import logging
from enum import Enum
from typing import Any

import numpy as np


# Logging setup
def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with standardized configuration.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


# Common CRS definitions
class CRS(str, Enum):
    """Common coordinate reference systems."""

    WGS84 = "EPSG:4326"  # Standard lat/lon
    WEB_MERCATOR = "EPSG:3857"  # Web mapping
    NAD83 = "EPSG:4269"  # US census boundaries
    UTM_ZONE_18N = "EPSG:26918"  # New York State (meters)
    US_ALBERS = "EPSG:5070"  # CONUS equal area


# Type checking helpers
def is_numeric_col(dtype: Any) -> bool:
    """Check if a Polars dtype is numeric."""
    import polars as pl

    return dtype in [
        pl.Int8,
        pl.Int16,
        pl.Int32,
        pl.Int64,
        pl.UInt8,
        pl.UInt16,
        pl.UInt32,
        pl.UInt64,
        pl.Float32,
        pl.Float64,
    ]


def is_categorical_col(dtype: Any) -> bool:
    """Check if a Polars dtype is categorical."""
    import polars as pl

    return dtype in [pl.Utf8, pl.Categorical, pl.Boolean]


# Data validation helpers
def validate_bounds(
    bounds: tuple[float, float, float, float],
) -> tuple[float, float, float, float]:
    """
    Validate and normalize spatial bounds.

    Args:
        bounds: (minx, miny, maxx, maxy)

    Returns:
        Validated bounds

    Raises:
        ValueError: If bounds are invalid
    """
    minx, miny, maxx, maxy = bounds

    if minx >= maxx:
        raise ValueError(f"minx ({minx}) must be less than maxx ({maxx})")
    if miny >= maxy:
        raise ValueError(f"miny ({miny}) must be less than maxy ({maxy})")

    return (minx, miny, maxx, maxy)


def as_float_vector(values: Any, name: str = "x") -> np.ndarray:
    """
    Coerce *values* into a finite 1-D float array.

    Args:
        values: Sequence, Series or array of numbers
        name: Name used in error messages

    Returns:
        1-D float64 array

    Raises:
        ValueError: If the input is empty, not 1-D, or holds missing/non-finite values
    """
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        raise ValueError(f"{name} must not be empty")
    if not np.isfinite(arr).all():
        n_bad = int((~np.isfinite(arr)).sum())
        raise ValueError(
            f"{name} contains {n_bad} missing or non-finite values; drop them before analysis"
        )
    return arr


def resolve_rng(
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> np.random.Generator:
    """Return *rng* if given, otherwise a fresh generator seeded with *seed*."""
    if rng is not None and seed is not None:
        raise ValueError("Pass either rng or seed, not both")
    if rng is not None:
        return rng
    return np.random.default_rng(seed)
