"""New York State Lyme disease incidence by county."""

from regionflow.datasets.ny_lyme.mapping import load_ny_lyme, save_ny_lyme
from regionflow.datasets.ny_lyme.schema import NY_LYME_SCHEMA, RATE_COL, create_ny_lyme_metadata

__all__ = [
    "load_ny_lyme",
    "save_ny_lyme",
    "NY_LYME_SCHEMA",
    "RATE_COL",
    "create_ny_lyme_metadata",
]
