"""Step registration for built-in cleaning, transform and spatial steps.

This module registers all built-in steps with the StepRegistry.
The CLI and the tests build their default registries from these functions.
"""

from __future__ import annotations

from regionflow.core.output_adapters import (
    GeoJSONOutputAdapter,
    GeoJSONOutputConfig,
    ParquetOutputAdapter,
    ParquetOutputConfig,
)
from regionflow.core.registry import StepRegistry, OutputAdapterRegistry
from regionflow.core.steps.spatial import (
    GlobalMoranConfig,
    GlobalMoranStep,
    LocalMoranConfig,
    LocalMoranStep,
    SpatialLagConfig,
    SpatialLagStep,
    TransformCRSConfig,
    TransformCRSStep,
)
from regionflow.core.steps.transform import (
    DropMissingConfig,
    DropMissingStep,
    LogTransformConfig,
    LogTransformStep,
)


def register_builtin_steps(registry: StepRegistry) -> None:
    """Register all built-in steps with the given registry.

    Called by :func:`get_default_registry`; recipes may pass their own registry.

    Args:
        registry: The StepRegistry to register steps with.
    """
    registry.register(
        "drop_missing",
        DropMissingStep,
        tags=["cleaning"],
        description="Drop regions with missing values in the given columns",
        config_model=DropMissingConfig,
    )

    registry.register(
        "log_transform",
        LogTransformStep,
        tags=["transform"],
        description="Natural-log transform of a skewed numeric column",
        config_model=LogTransformConfig,
    )

    registry.register(
        "transform_crs",
        TransformCRSStep,
        tags=["spatial"],
        description="Reproject region geometries to a different CRS",
        config_model=TransformCRSConfig,
    )

    registry.register(
        "spatial_lag",
        SpatialLagStep,
        tags=["spatial"],
        description="Compute spatial lag (row-standardized neighbor average)",
        config_model=SpatialLagConfig,
    )

    registry.register(
        "global_moran",
        GlobalMoranStep,
        tags=["spatial", "statistics"],
        description="Global Moran's I with analytical and permutation p-values",
        config_model=GlobalMoranConfig,
    )

    registry.register(
        "local_moran",
        LocalMoranStep,
        tags=["spatial", "statistics"],
        description="Local Moran's I (LISA) with cluster labels",
        config_model=LocalMoranConfig,
    )


def get_default_registry() -> StepRegistry:
    """Create and return a registry with all built-in steps registered.

    Returns:
        StepRegistry with all built-in steps.
    """
    registry = StepRegistry()
    register_builtin_steps(registry)
    return registry


def register_builtin_output_adapters(registry: OutputAdapterRegistry) -> None:
    """Register the Parquet and GeoJSON output adapters."""
    registry.register(
        "parquet",
        ParquetOutputAdapter,
        tags=["file"],
        description="Parquet with WKT geometry plus a .meta.json sidecar",
        config_model=ParquetOutputConfig,
    )
    registry.register(
        "geojson",
        GeoJSONOutputAdapter,
        tags=["file"],
        description="GeoJSON FeatureCollection",
        config_model=GeoJSONOutputConfig,
    )


def get_default_output_registry() -> OutputAdapterRegistry:
    """Create and return a registry with the built-in output adapters."""
    registry = OutputAdapterRegistry()
    register_builtin_output_adapters(registry)
    return registry
