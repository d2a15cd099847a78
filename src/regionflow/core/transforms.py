"""Distribution inspection and skew-reducing transforms."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal

import polars as pl

from regionflow.core.region_frame import RegionFrame
from regionflow.core.schema import FeatureProvenance
from regionflow.core.utils import get_logger

logger = get_logger(__name__)

TransformMethod = Literal["log", "log1p"]

# |skewness| above this is treated as strongly skewed.
SKEW_THRESHOLD = 1.0


@dataclass(frozen=True)
class DistributionSummary:
    """Descriptive statistics for one numeric column."""

    column: str
    count: int
    missing: int
    mean: float | None
    median: float | None
    std: float | None
    min: float | None
    max: float | None
    skewness: float | None

    def is_skewed(self, threshold: float = SKEW_THRESHOLD) -> bool:
        """Whether the absolute skewness exceeds *threshold*."""
        return self.skewness is not None and abs(self.skewness) > threshold

    def to_dict(self) -> dict[str, object]:
        """Plain-dict view."""
        return asdict(self)


def _require_columns(region_frame: RegionFrame, columns: list[str]) -> None:
    names = region_frame.lazy_frame.collect_schema().names()
    missing = [c for c in columns if c not in names]
    if missing:
        raise KeyError(f"Columns not found in RegionFrame: {missing}")


def summarize_distribution(region_frame: RegionFrame, column: str) -> DistributionSummary:
    """
    Summarize the distribution of *column*, ignoring missing values.

    Args:
        region_frame: Input RegionFrame
        column: Numeric attribute column

    Returns:
        DistributionSummary
    """
    _require_columns(region_frame, [column])
    col = pl.col(column).cast(pl.Float64)
    row = (
        region_frame.lazy_frame.select(
            [
                col.count().alias("count"),
                col.null_count().alias("missing"),
                col.mean().alias("mean"),
                col.median().alias("median"),
                col.std().alias("std"),
                col.min().alias("min"),
                col.max().alias("max"),
                col.skew().alias("skewness"),
            ]
        )
        .collect()
        .row(0, named=True)
    )
    summary = DistributionSummary(column=column, **row)
    logger.info(
        "Distribution of '%s': n=%s, missing=%s, mean=%s, median=%s, skewness=%s",
        column,
        summary.count,
        summary.missing,
        summary.mean,
        summary.median,
        summary.skewness,
    )
    if summary.is_skewed():
        logger.warning(
            f"Column '{column}' is strongly skewed (skewness={summary.skewness:.2f}); "
            "consider a log transform before testing"
        )
    return summary


def log_transform(
    region_frame: RegionFrame,
    column: str,
    *,
    method: TransformMethod = "log",
    output_col: str | None = None,
) -> RegionFrame:
    """
    Apply a natural-log transform to *column*.

    Missing values stay missing. ``log`` requires strictly positive values;
    ``log1p`` requires values greater than -1.

    Args:
        region_frame: Input RegionFrame
        column: Numeric attribute column
        method: "log" or "log1p"
        output_col: Name of the transformed column (defaults to ``{method}_{column}``)

    Returns:
        RegionFrame with the transformed column registered as a feature

    Raises:
        ValueError: If the column holds values outside the transform's domain
    """
    if method not in ("log", "log1p"):
        raise ValueError(f"Unsupported transform method: {method!r}")
    _require_columns(region_frame, [column])

    output_col = output_col or f"{method}_{column}"
    floor = 0.0 if method == "log" else -1.0
    col = pl.col(column).cast(pl.Float64)

    n_invalid = (
        region_frame.lazy_frame.select((col <= floor).sum().alias("n_invalid"))
        .collect()
        .item()
    )
    if n_invalid:
        raise ValueError(
            f"Cannot apply {method} to '{column}': {n_invalid} values are <= {floor:g}"
        )

    expr = col.log() if method == "log" else col.log1p()
    lf = region_frame.lazy_frame.with_columns(expr.alias(output_col))

    provenance = FeatureProvenance(
        produced_by="LogTransformStep",
        inputs=[column],
        tags={"transform"},
        description=f"Natural {method} of {column}",
        metadata={"method": method},
    )
    result = region_frame.with_lazy_frame(lf)
    return result.register_feature(
        output_col,
        {"source_step": "LogTransformStep", "inputs": [column], "method": method},
        provenance=provenance,
    )


def drop_missing(region_frame: RegionFrame, columns: list[str]) -> RegionFrame:
    """Drop regions with a missing (null or NaN) value in any of *columns*."""
    _require_columns(region_frame, columns)
    predicate = pl.all_horizontal(
        [pl.col(c).is_not_null() & pl.col(c).cast(pl.Float64).is_not_nan() for c in columns]
    )
    before = region_frame.count()
    result = region_frame.filter(predicate)
    after = result.count()
    if after < before:
        logger.warning(
            f"Dropped {before - after} of {before} regions with missing values in {columns}"
        )
    return result
