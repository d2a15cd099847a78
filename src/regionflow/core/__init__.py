"""Core module containing generic, dataset-agnostic primitives."""

from regionflow.core.autocorrelation import GlobalMoranResult, global_moran, moran_i
from regionflow.core.contiguity import Adjacency, build_contiguity, contiguity_from_frame
from regionflow.core.lisa import ClusterLabel, LocalMoranResult, local_moran
from regionflow.core.output_adapters import BaseOutputAdapter
from regionflow.core.region_frame import RegionFrame
from regionflow.core.registry import (
    ComponentSpec,
    OutputAdapterRegistry,
    StepRegistry,
)
from regionflow.core.schema import (
    AnalysisConfig,
    DatasetConfig,
    FeatureProvenance,
    RegionMetadata,
    RegionSchema,
)
from regionflow.core.weights import IslandError, SpatialWeights, binary_weights, row_standardize

__all__ = [
    "RegionFrame",
    "RegionSchema",
    "RegionMetadata",
    "FeatureProvenance",
    "DatasetConfig",
    "AnalysisConfig",
    "Adjacency",
    "build_contiguity",
    "contiguity_from_frame",
    "SpatialWeights",
    "IslandError",
    "binary_weights",
    "row_standardize",
    "GlobalMoranResult",
    "global_moran",
    "moran_i",
    "LocalMoranResult",
    "ClusterLabel",
    "local_moran",
    "StepRegistry",
    "ComponentSpec",
    "OutputAdapterRegistry",
    "BaseOutputAdapter",
]
