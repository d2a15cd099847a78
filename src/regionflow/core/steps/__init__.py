"""
Registered Step implementations for region analysis.

All steps in this package:
- Inherit from regionflow.core.pipeline.Step
- Declare inputs/outputs via registry
- Update RegionSchema with provenance tracking
"""

from regionflow.core.steps.registration import (
    get_default_output_registry,
    get_default_registry,
    register_builtin_output_adapters,
    register_builtin_steps,
)
from regionflow.core.steps.spatial import (
    GlobalMoranStep,
    LocalMoranStep,
    SpatialLagStep,
    TransformCRSStep,
)
from regionflow.core.steps.transform import DropMissingStep, LogTransformStep

__all__ = [
    # Registration
    "get_default_registry",
    "register_builtin_steps",
    "get_default_output_registry",
    "register_builtin_output_adapters",
    # Cleaning and transform steps
    "DropMissingStep",
    "LogTransformStep",
    # Spatial steps
    "GlobalMoranStep",
    "LocalMoranStep",
    "SpatialLagStep",
    "TransformCRSStep",
]
