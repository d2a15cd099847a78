"""RegionFrame: Central abstraction for region (polygon) data."""

from typing import Any

import numpy as np
import polars as pl
from shapely import from_wkt
from shapely.geometry.base import BaseGeometry

from regionflow.core.schema import FeatureProvenance, RegionMetadata, RegionSchema
from regionflow.core.utils import get_logger

logger = get_logger(__name__)


class RegionFrame:
    """
    Central abstraction for region data.

    Wraps a Polars LazyFrame with schema and metadata. Each row is a region with
    an identifier, a WKT boundary and attribute columns. Row order is significant:
    neighbor graphs and weight matrices refer to regions by position.

    Attributes:
        lazy_frame: The underlying Polars LazyFrame
        schema: The region schema describing column structure
        metadata: Metadata about the dataset (CRS, sources, statistics, etc.)
    """

    def __init__(
        self,
        lazy_frame: pl.LazyFrame,
        schema: RegionSchema,
        metadata: RegionMetadata,
    ) -> None:
        """
        Initialize a RegionFrame.

        Args:
            lazy_frame: Polars LazyFrame containing the region data
            schema: Schema describing the region structure
            metadata: Metadata about the dataset
        """
        self.lazy_frame = lazy_frame

        # Keep provenance in sync between schema and metadata.
        combined_provenance = dict(metadata.feature_provenance)
        combined_provenance.update(schema.feature_provenance)

        if combined_provenance != metadata.feature_provenance:
            metadata = metadata.model_copy(update={"feature_provenance": combined_provenance})
        if combined_provenance != schema.feature_provenance:
            schema = schema.model_copy(update={"feature_provenance": combined_provenance})

        self.schema = schema
        self.metadata = metadata
        logger.debug(
            f"Created RegionFrame for dataset '{metadata.dataset_name}' "
            f"with schema id_col='{schema.id_col}'"
        )

    @classmethod
    def from_frame(
        cls,
        df: pl.DataFrame | pl.LazyFrame,
        schema: RegionSchema,
        metadata: RegionMetadata,
    ) -> "RegionFrame":
        """Build a RegionFrame from an eager or lazy Polars frame."""
        lf = df.lazy() if isinstance(df, pl.DataFrame) else df
        return cls(lf, schema, metadata)

    def with_lazy_frame(self, lazy_frame: pl.LazyFrame) -> "RegionFrame":
        """
        Create a new RegionFrame with a different LazyFrame.

        Args:
            lazy_frame: New LazyFrame to wrap

        Returns:
            New RegionFrame with updated LazyFrame
        """
        return self._spawn(lazy_frame=lazy_frame)

    def with_metadata(self, **updates: Any) -> "RegionFrame":
        """
        Create a new RegionFrame with updated metadata.

        Args:
            **updates: Metadata fields to update

        Returns:
            New RegionFrame with updated metadata
        """
        new_metadata = self.metadata.model_copy(update=updates)
        return self._spawn(metadata=new_metadata)

    def with_schema(self, **updates: Any) -> "RegionFrame":
        """Return a new RegionFrame with schema updates applied immutably."""

        new_schema = self.schema.model_copy(update=updates)
        return self._spawn(schema=new_schema)

    def _spawn(
        self,
        *,
        lazy_frame: pl.LazyFrame | None = None,
        schema: RegionSchema | None = None,
        metadata: RegionMetadata | None = None,
    ) -> "RegionFrame":
        """Internal helper to create new RegionFrame instances preserving invariants."""

        return RegionFrame(
            lazy_frame if lazy_frame is not None else self.lazy_frame,
            schema or self.schema,
            metadata or self.metadata,
        )

    def register_feature(
        self,
        name: str,
        info: dict[str, Any],
        *,
        numeric: bool = True,
        provenance: FeatureProvenance | None = None,
    ) -> "RegionFrame":
        """Return a new RegionFrame with feature catalog updated.

        Args:
            name: Feature identifier to register.
            info: Arbitrary metadata describing the feature.
            numeric: Whether the feature joins ``numeric_cols`` or ``categorical_cols``.
            provenance: Optional provenance record; inferred from *info* when omitted.

        Returns:
            RegionFrame whose metadata includes the registered feature.
        """
        catalog = dict(self.metadata.feature_catalog)
        catalog[name] = info

        if provenance is None:
            provenance = FeatureProvenance(
                produced_by=info.get("source_step"),
                inputs=list(info.get("inputs", [])),
                tags=set(info.get("tags", [])),
                description=info.get("description"),
                metadata={
                    k: v
                    for k, v in info.items()
                    if k not in {"source_step", "inputs", "tags", "description"}
                },
            )

        metadata_provenance = dict(self.metadata.feature_provenance)
        metadata_provenance[name] = provenance

        schema_provenance = dict(self.schema.feature_provenance)
        schema_provenance[name] = provenance

        numeric_cols = list(self.schema.numeric_cols)
        categorical_cols = list(self.schema.categorical_cols)
        target = numeric_cols if numeric else categorical_cols
        if name not in target:
            target.append(name)

        logger.debug(
            "Registering feature '%s' on dataset '%s'",
            name,
            self.metadata.dataset_name,
        )

        return self._spawn(
            schema=self.schema.model_copy(
                update={
                    "feature_provenance": schema_provenance,
                    "numeric_cols": numeric_cols,
                    "categorical_cols": categorical_cols,
                }
            ),
            metadata=self.metadata.model_copy(
                update={
                    "feature_catalog": catalog,
                    "feature_provenance": metadata_provenance,
                }
            ),
        )

    def record_statistic(self, name: str, summary: dict[str, Any]) -> "RegionFrame":
        """Return a new RegionFrame with a statistic summary stored in metadata."""

        statistics = dict(self.metadata.statistics)
        statistics[name] = dict(summary)
        return self.with_metadata(statistics=statistics)

    def collect(self) -> pl.DataFrame:
        """Materialize the lazy frame into a DataFrame."""

        logger.debug("Collecting RegionFrame for dataset '%s'", self.metadata.dataset_name)
        df = self.lazy_frame.collect()
        logger.info("Collected %s regions, %s columns", len(df), len(df.columns))
        return df

    def head(self, n: int = 5) -> pl.DataFrame:
        """Collect the first *n* rows."""

        return self.lazy_frame.head(n).collect()

    def describe(self) -> pl.DataFrame:
        """Return descriptive statistics about the attribute columns."""

        return self.lazy_frame.drop(self.schema.geometry_col).collect().describe()

    def select(self, *exprs: pl.Expr | str) -> "RegionFrame":
        """Return a new RegionFrame selecting the provided expressions."""

        return self.with_lazy_frame(self.lazy_frame.select(*exprs))

    def filter(self, *predicates: pl.Expr) -> "RegionFrame":
        """Return a new RegionFrame filtered by the predicates."""

        return self.with_lazy_frame(self.lazy_frame.filter(*predicates))

    def with_columns(self, *exprs: pl.Expr, **named_exprs: pl.Expr) -> "RegionFrame":
        """Return a new RegionFrame with additional or transformed columns."""

        return self.with_lazy_frame(self.lazy_frame.with_columns(*exprs, **named_exprs))

    def sort(
        self,
        by: str | pl.Expr | list[str | pl.Expr],
        descending: bool = False,
    ) -> "RegionFrame":
        """Return a new RegionFrame sorted by *by*."""

        return self.with_lazy_frame(self.lazy_frame.sort(by, descending=descending))

    def ids(self) -> list[Any]:
        """Return region identifiers in row order."""

        return self.lazy_frame.select(self.schema.id_col).collect().to_series().to_list()

    def geometries(self) -> list[BaseGeometry]:
        """Parse the WKT geometry column into shapely geometries, in row order."""

        wkts = self.lazy_frame.select(self.schema.geometry_col).collect().to_series()
        if wkts.null_count():
            raise ValueError(
                f"{wkts.null_count()} regions have no geometry in column "
                f"'{self.schema.geometry_col}'"
            )
        return list(from_wkt(np.asarray(wkts.to_list(), dtype=object)))

    def values(self, column: str) -> np.ndarray:
        """Return *column* as a float array; nulls become NaN."""

        series = self.lazy_frame.select(pl.col(column).cast(pl.Float64)).collect().to_series()
        return series.to_numpy().astype(float)

    def count(self) -> int:
        """Return the number of regions."""

        df = self.lazy_frame.select(pl.len().alias("_count"))
        result = df.collect()
        rows = result.rows()
        return int(rows[0][0]) if rows else 0

    def __repr__(self) -> str:
        """String representation of the RegionFrame."""

        return (
            "RegionFrame(\n"
            f"  dataset={self.metadata.dataset_name},\n"
            f"  id_col={self.schema.id_col},\n"
            f"  crs={self.metadata.crs}\n"
            ")"
        )

    def __len__(self) -> int:
        """Return the number of regions."""

        return self.count()
