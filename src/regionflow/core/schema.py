"""Schema definitions for region datasets and analysis configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeatureProvenance(BaseModel):
    """Record describing how a feature was produced during a pipeline run."""

    produced_by: str | None = None
    inputs: list[str] = Field(default_factory=list)
    tags: set[str] = Field(default_factory=set)
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RegionSchema(BaseModel):
    """
    Describes the structure of region data.

    Attributes:
        id_col: Name of the region identifier column (required)
        geometry_col: Name of the WKT geometry column
        numeric_cols: List of numeric attribute columns
        categorical_cols: List of categorical attribute columns
        feature_provenance: Provenance metadata keyed by feature name
    """

    id_col: str
    geometry_col: str = "geometry"
    numeric_cols: list[str] = Field(default_factory=list)
    categorical_cols: list[str] = Field(default_factory=list)
    feature_provenance: dict[str, FeatureProvenance] = Field(default_factory=dict)

    @field_validator("id_col", "geometry_col")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty column names."""
        if not v or not v.strip():
            raise ValueError("Column names must be non-empty")
        return v

    def model_post_init(self, __context: Any) -> None:
        """Validate that the id and geometry columns differ."""
        if self.id_col == self.geometry_col:
            raise ValueError("id_col and geometry_col must be different columns")

    def compatibility_issues(self, other: RegionSchema) -> list[str]:
        """Return human-readable compatibility issues when transitioning to *other*."""

        issues: list[str] = []

        if self.id_col != other.id_col:
            issues.append(f"id_col mismatch: {self.id_col!r} -> {other.id_col!r}")

        if self.geometry_col != other.geometry_col:
            issues.append(
                f"geometry_col mismatch: {self.geometry_col!r} -> {other.geometry_col!r}"
            )

        missing_features = set(self.feature_provenance) - set(other.feature_provenance)
        if missing_features:
            issues.append(
                "missing feature provenance entries: " + ", ".join(sorted(missing_features))
            )

        return issues


class RegionMetadata(BaseModel):
    """
    Metadata about a region dataset.

    Attributes:
        dataset_name: Name of the dataset
        crs: Coordinate reference system (e.g., "EPSG:4326")
        bounds: Spatial bounds (minx, miny, maxx, maxy)
        sources: Paths of the files the regions were assembled from
        custom: Additional custom metadata
        feature_catalog: Free-form descriptions of derived features
        feature_provenance: Provenance metadata keyed by feature name
        statistics: Summaries of statistics computed on the frame (e.g. global Moran's I)
    """

    dataset_name: str
    crs: str = "EPSG:4326"
    bounds: tuple[float, float, float, float] | None = None
    sources: dict[str, str] = Field(default_factory=dict)
    custom: dict[str, Any] = Field(default_factory=dict)
    feature_catalog: dict[str, Any] = Field(default_factory=dict)
    feature_provenance: dict[str, FeatureProvenance] = Field(default_factory=dict)
    statistics: dict[str, dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DatasetConfig(BaseModel):
    """
    Configuration for loading and joining a region dataset.

    Attributes:
        dataset_name: Name of the dataset
        attributes_path: Delimited text file with per-region attributes
        boundaries_path: Vector file (or WKT table) with region polygons
        attributes_key: Join key column in the attribute table
        boundaries_key: Join key column in the boundary table
        id_col: Column used as the region identifier after the join
        crs: Target coordinate reference system
        output_path: Where the joined dataset is written
    """

    dataset_name: str
    attributes_path: str
    boundaries_path: str
    attributes_key: str
    boundaries_key: str
    id_col: str | None = None
    crs: str | None = None
    output_path: str | None = None


class ContiguityConfig(BaseModel):
    """Neighbor graph settings."""

    criterion: Literal["queen", "rook"] = "queen"
    tolerance: float = Field(default=0.0, ge=0.0)


class AnalysisConfig(BaseModel):
    """
    Configuration for an autocorrelation analysis run.

    Attributes:
        dataset: Dataset name
        recipe: Recipe name
        value_col: Attribute column to analyse
        transform: Distribution transform applied before testing
        contiguity: Neighbor graph settings
        permutations: Number of random permutations for pseudo p-values
        seed: Seed for the permutation generator
        alternative: Alternative hypothesis for the global test
        significance: Threshold for LISA cluster classification
        steps: Optional explicit step definitions (overrides the recipe pipeline)
        output: Output settings (path, format)
    """

    dataset: str
    recipe: str
    value_col: str | None = None
    transform: Literal["log", "log1p", "none"] = "log"
    contiguity: ContiguityConfig = Field(default_factory=ContiguityConfig)
    permutations: int = Field(default=999, ge=0)
    seed: int | None = None
    alternative: Literal["greater", "less", "two-sided"] = "greater"
    significance: float = Field(default=0.05, gt=0.0, lt=1.0)
    steps: list[Any] = Field(default_factory=list)
    output: dict[str, Any] = Field(default_factory=dict)
