"""Schema definition for the NY Lyme disease dataset."""

from collections.abc import Mapping
from typing import Any

from regionflow.core.schema import RegionMetadata, RegionSchema

# Incidence rate per 100,000 by county, 2014-2016.
# Published as "Percent.Rate" in the NYS community health indicator extract.
RAW_RATE_COL = "Percent.Rate"
RATE_COL = "Lyme.Incidence.Rate"

COUNTY_NAME_COL = "NAME"
ATTRIBUTE_KEY = "County.Name"

SELECTED_COLUMNS = [
    "NAME",
    "FIPS_CODE",
    "Health.Topic",
    "Indicator",
    "Measure.Unit",
    RATE_COL,
    "Data.Years",
    "Data.Source",
]

NY_LYME_SCHEMA = RegionSchema(
    id_col=COUNTY_NAME_COL,
    geometry_col="geometry",
    numeric_cols=[RATE_COL],
    categorical_cols=[
        "FIPS_CODE",
        "Health.Topic",
        "Indicator",
        "Measure.Unit",
        "Data.Years",
        "Data.Source",
    ],
)


def create_ny_lyme_metadata(
    *,
    dataset_name: str = "ny_lyme",
    crs: str = "EPSG:4326",
    bounds: tuple[float, float, float, float] | None = None,
    sources: Mapping[str, str] | None = None,
    custom: Mapping[str, Any] | None = None,
) -> RegionMetadata:
    """Create typed metadata tailored for the NY Lyme dataset."""
    return RegionMetadata(
        dataset_name=dataset_name,
        crs=crs,
        bounds=bounds,
        sources=dict(sources or {}),
        custom=dict(custom or {}),
        feature_catalog={
            RATE_COL: {
                "description": "Lyme disease incidence rate per 100,000",
                "source_column": RAW_RATE_COL,
            }
        },
    )
