"""Spatial pipeline steps with registry integration.

Each step:
- Inherits from Step base class
- Registers inputs/outputs via FeatureProvenance
- Supports Pydantic config models for validation
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

import numpy as np
import polars as pl
from pydantic import BaseModel, Field

from regionflow.core.autocorrelation import global_moran
from regionflow.core.contiguity import build_contiguity
from regionflow.core.lisa import ClusterLabel, local_moran
from regionflow.core.loaders import reproject_wkt
from regionflow.core.pipeline import Step
from regionflow.core.schema import FeatureProvenance
from regionflow.core.utils import get_logger
from regionflow.core.weights import SpatialWeights, row_standardize

if TYPE_CHECKING:
    from regionflow.core.region_frame import RegionFrame

logger = get_logger(__name__)

ROW_COL = "_region_row"

# -----------------------------------------------------------------------------
# Pydantic Config Models for Step Parameters
# -----------------------------------------------------------------------------


class TransformCRSConfig(BaseModel):
    """Configuration for CRS transformation step."""

    target_crs: str = Field(..., description="Target CRS (e.g., 'EPSG:26918')")


class SpatialLagConfig(BaseModel):
    """Configuration for spatial lag computation step."""

    value_cols: list[str] = Field(..., description="Columns to compute spatial lag for")
    criterion: Literal["queen", "rook"] = Field(default="queen", description="Contiguity type")
    tolerance: float = Field(default=0.0, ge=0, description="Boundary touching tolerance")


class GlobalMoranConfig(BaseModel):
    """Configuration for the global Moran's I step."""

    value_col: str = Field(..., description="Column to test for autocorrelation")
    criterion: Literal["queen", "rook"] = Field(default="queen", description="Contiguity type")
    tolerance: float = Field(default=0.0, ge=0, description="Boundary touching tolerance")
    permutations: int = Field(default=999, ge=0, description="Number of permutations")
    alternative: Literal["greater", "less", "two-sided"] = Field(
        default="greater", description="Alternative hypothesis"
    )
    seed: int | None = Field(default=None, description="Seed for the permutation generator")


class LocalMoranConfig(BaseModel):
    """Configuration for local spatial autocorrelation step."""

    value_col: str = Field(..., description="Column to compute local autocorrelation for")
    criterion: Literal["queen", "rook"] = Field(default="queen", description="Contiguity type")
    tolerance: float = Field(default=0.0, ge=0, description="Boundary touching tolerance")
    permutations: int = Field(default=999, ge=0, description="Permutations per region")
    significance: float = Field(
        default=0.05, gt=0, lt=1, description="Pseudo p-value threshold for clusters"
    )
    seed: int | None = Field(default=None, description="Seed for the permutation generator")


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _complete_regions(
    region_frame: RegionFrame,
    value_cols: Sequence[str],
    criterion: str,
    tolerance: float,
) -> tuple[pl.DataFrame, pl.DataFrame, SpatialWeights]:
    """Collect the frame and build weights over regions with all *value_cols* present.

    Returns the full frame with a row index, the complete subset and its
    row-standardized weights (islands kept as zero rows).
    """
    for col in value_cols:
        if col not in region_frame.lazy_frame.collect_schema().names():
            raise KeyError(f"Column '{col}' not found in RegionFrame")

    full = region_frame.lazy_frame.with_row_index(ROW_COL).collect()
    complete = full.filter(
        pl.all_horizontal(
            [
                pl.col(c).is_not_null() & pl.col(c).cast(pl.Float64).is_not_nan()
                for c in value_cols
            ]
        )
    )
    if complete.height < full.height:
        logger.warning(
            f"{full.height - complete.height} regions with missing {list(value_cols)} "
            "are left out of the neighbor graph"
        )

    sub_frame = region_frame.with_lazy_frame(complete.drop(ROW_COL).lazy())
    adjacency = build_contiguity(
        sub_frame.geometries(),
        criterion=criterion,  # type: ignore[arg-type]
        tolerance=tolerance,
        ids=complete[region_frame.schema.id_col].to_list(),
    )
    weights = row_standardize(adjacency, allow_islands=True)
    return full, complete, weights


# -----------------------------------------------------------------------------
# Spatial Steps
# -----------------------------------------------------------------------------


class TransformCRSStep(Step):
    """Reproject region geometries to a different CRS.

    Inputs:
        - geometry_col from RegionSchema

    Outputs:
        - geometry_col rewritten in the target CRS
        - Updated CRS in metadata
    """

    def __init__(self, target_crs: str) -> None:
        self.target_crs = target_crs

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Execute CRS transformation."""
        if region_frame.metadata.crs == self.target_crs:
            logger.debug(f"CRS already matches target: {self.target_crs}")
            return region_frame

        df = reproject_wkt(
            region_frame.collect(),
            region_frame.metadata.crs,
            self.target_crs,
            geometry_col=region_frame.schema.geometry_col,
        )
        return region_frame.with_lazy_frame(df.lazy()).with_metadata(crs=self.target_crs)


class SpatialLagStep(Step):
    """Compute the spatial lag (row-standardized neighbor average) of columns.

    Inputs:
        - value_cols

    Outputs:
        - {value_col}_spatial_lag columns; null for islands and missing values
    """

    def __init__(
        self,
        value_cols: Sequence[str],
        criterion: str = "queen",
        tolerance: float = 0.0,
    ) -> None:
        self.value_cols = list(value_cols)
        self.criterion = criterion
        self.tolerance = tolerance

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Execute spatial lag computation."""
        full, complete, weights = _complete_regions(
            region_frame, self.value_cols, self.criterion, self.tolerance
        )
        defined = np.ones(weights.n, dtype=bool)
        defined[list(weights.islands)] = False

        lags = complete.select(ROW_COL)
        result = region_frame
        for value_col in self.value_cols:
            lag_col = f"{value_col}_spatial_lag"
            lag = weights.lag(complete[value_col].cast(pl.Float64).to_numpy())
            lags = lags.with_columns(
                pl.Series(
                    lag_col,
                    [float(v) if d else None for v, d in zip(lag, defined)],
                    dtype=pl.Float64,
                )
            )

            provenance = FeatureProvenance(
                produced_by="SpatialLagStep",
                inputs=[value_col],
                tags={"spatial"},
                description=f"Spatial lag of {value_col} using {self.criterion} weights",
            )
            result = result.register_feature(
                lag_col,
                {"source_step": "SpatialLagStep", "value_col": value_col},
                provenance=provenance,
            )

        joined = full.join(lags, on=ROW_COL, how="left").sort(ROW_COL).drop(ROW_COL)
        return result.with_lazy_frame(joined.lazy())


class GlobalMoranStep(Step):
    """Test a column for global spatial autocorrelation.

    Inputs:
        - value_col

    Outputs:
        - ``metadata.statistics["{value_col}_global_moran"]`` summary
    """

    def __init__(
        self,
        value_col: str,
        criterion: str = "queen",
        tolerance: float = 0.0,
        permutations: int = 999,
        alternative: str = "greater",
        seed: int | None = None,
    ) -> None:
        self.value_col = value_col
        self.criterion = criterion
        self.tolerance = tolerance
        self.permutations = permutations
        self.alternative = alternative
        self.seed = seed

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Execute the global Moran's I test."""
        _, complete, weights = _complete_regions(
            region_frame, [self.value_col], self.criterion, self.tolerance
        )
        result = global_moran(
            complete[self.value_col].cast(pl.Float64).to_numpy(),
            weights,
            permutations=self.permutations,
            alternative=self.alternative,  # type: ignore[arg-type]
            rng=np.random.default_rng(self.seed),
        )
        summary = result.summary()
        summary["excluded"] = [weights.ids[i] for i in result.excluded]
        summary["criterion"] = self.criterion
        return region_frame.record_statistic(f"{self.value_col}_global_moran", summary)


class LocalMoranStep(Step):
    """Compute local Moran's I (LISA) for a column.

    Inputs:
        - value_col

    Outputs:
        - {value_col}_local_moran_i: Local statistic
        - {value_col}_local_moran_lag: Neighbor average of the centred values
        - {value_col}_local_moran_p_sim: Conditional permutation pseudo p-value
        - {value_col}_local_moran_quadrant: Scatterplot quadrant (1=HH, 2=LH, 3=LL, 4=HL)
        - {value_col}_lisa_cluster: Cluster label; "undefined" for islands and missing values
    """

    def __init__(
        self,
        value_col: str,
        criterion: str = "queen",
        tolerance: float = 0.0,
        permutations: int = 999,
        significance: float = 0.05,
        seed: int | None = None,
    ) -> None:
        self.value_col = value_col
        self.criterion = criterion
        self.tolerance = tolerance
        self.permutations = permutations
        self.significance = significance
        self.seed = seed

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Execute local Moran's I computation."""
        full, complete, weights = _complete_regions(
            region_frame, [self.value_col], self.criterion, self.tolerance
        )
        lisa = local_moran(
            complete[self.value_col].cast(pl.Float64).to_numpy(),
            weights,
            permutations=self.permutations,
            significance=self.significance,
            rng=np.random.default_rng(self.seed),
        )

        prefix = f"{self.value_col}_"
        cluster_col = f"{prefix}lisa_cluster"
        stats = lisa.to_frame(prefix=prefix).drop("region_id", strict=False)
        stats = stats.with_columns(complete[ROW_COL])

        joined = (
            full.join(stats, on=ROW_COL, how="left")
            .sort(ROW_COL)
            .drop(ROW_COL)
            .with_columns(pl.col(cluster_col).fill_null(ClusterLabel.UNDEFINED.value))
        )

        provenance = FeatureProvenance(
            produced_by="LocalMoranStep",
            inputs=[self.value_col],
            tags={"spatial", "statistics"},
            description=f"Local Moran's I for {self.value_col}",
            metadata={
                "criterion": self.criterion,
                "permutations": self.permutations,
                "significance": self.significance,
            },
        )

        result = region_frame.with_lazy_frame(joined.lazy())
        for suffix in (
            "local_moran_i",
            "local_moran_lag",
            "local_moran_p_sim",
            "local_moran_quadrant",
        ):
            result = result.register_feature(
                f"{prefix}{suffix}",
                {"source_step": "LocalMoranStep", "value_col": self.value_col},
                provenance=provenance,
            )
        result = result.register_feature(
            cluster_col,
            {"source_step": "LocalMoranStep", "value_col": self.value_col},
            numeric=False,
            provenance=provenance,
        )
        return result.record_statistic(
            f"{self.value_col}_local_moran", {"counts": lisa.counts(), **provenance.metadata}
        )
