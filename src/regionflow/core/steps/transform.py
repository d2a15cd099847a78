"""Data-quality and distribution transform steps."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from regionflow.core.pipeline import Step
from regionflow.core.transforms import drop_missing, log_transform, summarize_distribution
from regionflow.core.utils import get_logger

if TYPE_CHECKING:
    from regionflow.core.region_frame import RegionFrame

logger = get_logger(__name__)


class DropMissingConfig(BaseModel):
    """Configuration for the missing-value filter step."""

    columns: list[str] = Field(..., min_length=1, description="Columns that must be present")


class LogTransformConfig(BaseModel):
    """Configuration for the log transform step."""

    column: str = Field(..., description="Numeric column to transform")
    method: Literal["log", "log1p"] = Field(default="log", description="Transform function")
    output_col: str | None = Field(
        default=None, description="Output column; defaults to '{method}_{column}'"
    )


class DropMissingStep(Step):
    """Drop regions with missing values before neighbor graphs are built.

    Inputs:
        - columns

    Outputs:
        - Filtered RegionFrame
    """

    drops_regions = True

    def __init__(self, columns: Sequence[str]) -> None:
        self.columns = list(columns)

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Execute the missing-value filter."""
        return drop_missing(region_frame, self.columns)


class LogTransformStep(Step):
    """Apply a natural-log transform to reduce right skew.

    Inputs:
        - column

    Outputs:
        - {method}_{column} (or output_col)
        - ``metadata.statistics`` entries describing the distribution before and after
    """

    def __init__(
        self,
        column: str,
        method: str = "log",
        output_col: str | None = None,
    ) -> None:
        self.column = column
        self.method = method
        self.output_col = output_col or f"{method}_{column}"

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Execute the transform."""
        before = summarize_distribution(region_frame, self.column)
        result = log_transform(
            region_frame,
            self.column,
            method=self.method,  # type: ignore[arg-type]
            output_col=self.output_col,
        )
        after = summarize_distribution(result, self.output_col)
        result = result.record_statistic(f"{self.column}_distribution", before.to_dict())
        return result.record_statistic(f"{self.output_col}_distribution", after.to_dict())
