"""Data loading and mapping for the NY Lyme disease dataset."""

from pathlib import Path

import polars as pl
from shapely import from_wkt, total_bounds

from regionflow.core.loaders import (
    join_regions,
    read_attribute_table,
    read_boundaries,
    write_regions,
)
from regionflow.core.region_frame import RegionFrame
from regionflow.core.utils import get_logger, validate_bounds
from regionflow.datasets.ny_lyme.schema import (
    ATTRIBUTE_KEY,
    COUNTY_NAME_COL,
    NY_LYME_SCHEMA,
    RATE_COL,
    RAW_RATE_COL,
    SELECTED_COLUMNS,
    create_ny_lyme_metadata,
)

logger = get_logger(__name__)


def clean_lyme_attributes(df: pl.DataFrame) -> pl.DataFrame:
    """
    Rename the raw rate column and coerce it to float.

    Suppressed or blank rates in the extract become nulls.

    Args:
        df: Raw attribute table

    Returns:
        Attribute table with a Float64 ``Lyme.Incidence.Rate`` column
    """
    if RAW_RATE_COL not in df.columns:
        raise KeyError(f"Column '{RAW_RATE_COL}' not found in attribute table")

    df = df.with_columns(
        pl.col(RAW_RATE_COL).cast(pl.Float64, strict=False).alias(RATE_COL)
    ).drop(RAW_RATE_COL)

    n_null = df[RATE_COL].null_count()
    if n_null:
        logger.warning(f"{n_null} counties have no usable {RATE_COL}")
    return df


def load_ny_lyme(
    attributes_path: str | Path,
    boundaries_path: str | Path,
    *,
    crs: str | None = None,
    output_path: str | Path | None = None,
) -> RegionFrame:
    """
    Load the NY Lyme incidence table joined onto the county boundaries.

    Counties are matched on the boundary ``NAME`` and the attribute
    ``County.Name``; every county is kept, unmatched ones with null attributes.

    Args:
        attributes_path: CSV extract of the Lyme incidence indicator
        boundaries_path: NYS county boundaries (shapefile or WKT table)
        crs: Optional CRS to reproject the boundaries into
        output_path: If given, the joined dataset is written there

    Returns:
        RegionFrame with one row per county
    """
    attributes = clean_lyme_attributes(read_attribute_table(attributes_path))
    boundaries, boundary_crs = read_boundaries(boundaries_path, crs=crs)

    joined = join_regions(
        boundaries,
        attributes,
        boundaries_key=COUNTY_NAME_COL,
        attributes_key=ATTRIBUTE_KEY,
        dataset_name="ny_lyme",
        id_col=COUNTY_NAME_COL,
        crs=boundary_crs or "EPSG:4326",
    )

    df = joined.collect()
    missing = [c for c in SELECTED_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"NY Lyme columns missing after join: {missing}")

    geometry_col = NY_LYME_SCHEMA.geometry_col
    df = df.select([*SELECTED_COLUMNS, geometry_col]).with_columns(
        pl.col("FIPS_CODE").cast(pl.Utf8)
    )
    minx, miny, maxx, maxy = total_bounds(from_wkt(df[geometry_col].to_list()))

    metadata = create_ny_lyme_metadata(
        crs=joined.metadata.crs,
        bounds=validate_bounds((float(minx), float(miny), float(maxx), float(maxy))),
        sources={"attributes": str(attributes_path), "boundaries": str(boundaries_path)},
    )
    region_frame = RegionFrame(df.lazy(), NY_LYME_SCHEMA, metadata)
    logger.info(f"Loaded {df.height} NY counties")

    if output_path is not None:
        save_ny_lyme(region_frame, output_path)
    return region_frame


def save_ny_lyme(region_frame: RegionFrame, path: str | Path) -> Path:
    """Persist the joined county dataset for reuse in later sessions."""
    return write_regions(region_frame, path)
