"""Loading, joining and persisting region datasets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import polars as pl
from pyproj import Transformer
from shapely import from_wkt, to_wkt
from shapely.ops import transform as transform_geometry

from regionflow.core.region_frame import RegionFrame
from regionflow.core.schema import DatasetConfig, RegionMetadata, RegionSchema
from regionflow.core.utils import get_logger, is_categorical_col, is_numeric_col

logger = get_logger(__name__)

VECTOR_SUFFIXES = {".shp", ".gpkg", ".geojson", ".json", ".fgb", ".zip", ".kml"}
WKT_TABLE_SUFFIXES = {".parquet", ".csv", ".tsv"}


def read_attribute_table(path: str | Path, **read_kwargs: Any) -> pl.DataFrame:
    """
    Read a delimited text file of per-region attributes.

    Args:
        path: CSV/TSV file
        **read_kwargs: Extra options forwarded to ``polars.read_csv``

    Returns:
        DataFrame with one row per region
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Attribute table not found: {path}")

    if path.suffix.lower() == ".tsv":
        read_kwargs.setdefault("separator", "\t")
    logger.info(f"Loading attribute table from: {path}")
    df = pl.read_csv(path, **read_kwargs)
    logger.info("Attribute table has %s rows, %s columns", df.height, df.width)
    return df


def reproject_wkt(
    df: pl.DataFrame,
    source_crs: str,
    target_crs: str,
    geometry_col: str = "geometry",
) -> pl.DataFrame:
    """Reproject a WKT geometry column from *source_crs* to *target_crs*."""
    if source_crs == target_crs:
        return df

    logger.info(f"Transforming CRS from {source_crs} to {target_crs}")
    transformer = Transformer.from_crs(source_crs, target_crs, always_xy=True)
    geoms = from_wkt(df[geometry_col].to_list())
    projected = [to_wkt(transform_geometry(transformer.transform, g)) for g in geoms]
    return df.with_columns(pl.Series(geometry_col, projected, dtype=pl.Utf8))


def read_boundaries(
    path: str | Path,
    *,
    geometry_col: str = "geometry",
    crs: str | None = None,
    source_crs: str | None = None,
) -> tuple[pl.DataFrame, str | None]:
    """
    Read region boundaries into a DataFrame with a WKT geometry column.

    Vector files (shapefile, GeoPackage, GeoJSON, ...) are parsed with geopandas.
    Parquet/CSV tables must already hold WKT in *geometry_col*.

    Args:
        path: Boundary dataset
        geometry_col: Name of the WKT column in the result
        crs: Optional target CRS to reproject into
        source_crs: CRS of WKT tables (vector files carry their own)

    Returns:
        (DataFrame, CRS string or None)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary dataset not found: {path}")

    suffix = path.suffix.lower()
    logger.info(f"Loading boundaries from: {path}")

    if suffix in WKT_TABLE_SUFFIXES:
        df = pl.read_parquet(path) if suffix == ".parquet" else pl.read_csv(path)
        if geometry_col not in df.columns:
            raise KeyError(f"Boundary table {path} has no '{geometry_col}' column")
        current_crs = source_crs
    elif suffix in VECTOR_SUFFIXES or path.is_dir():
        import geopandas as gpd

        gdf = gpd.read_file(path)
        current_crs = gdf.crs.to_string() if gdf.crs is not None else source_crs
        wkt = gdf.geometry.to_wkt()
        attrs = gdf.drop(columns=gdf.geometry.name)
        df = pl.from_pandas(attrs).with_columns(
            pl.Series(geometry_col, wkt.to_list(), dtype=pl.Utf8)
        )
    else:
        raise ValueError(f"Unsupported boundary file type: {path.suffix}")

    if crs is not None and current_crs is not None and crs != current_crs:
        df = reproject_wkt(df, current_crs, crs, geometry_col=geometry_col)
        current_crs = crs
    elif crs is not None and current_crs is None:
        logger.warning("Boundaries have no CRS; assuming %s", crs)
        current_crs = crs

    logger.info("Loaded %s boundaries (crs=%s)", df.height, current_crs)
    return df, current_crs


def join_regions(
    boundaries: pl.DataFrame,
    attributes: pl.DataFrame,
    *,
    boundaries_key: str,
    attributes_key: str,
    dataset_name: str,
    id_col: str | None = None,
    geometry_col: str = "geometry",
    crs: str = "EPSG:4326",
) -> RegionFrame:
    """
    Left-join per-region attributes onto region boundaries.

    Every boundary is kept in its original order; regions without a matching
    attribute row get nulls. Duplicate attribute keys are rejected since they
    would duplicate regions.

    Args:
        boundaries: Boundary DataFrame with a WKT geometry column
        attributes: Attribute DataFrame
        boundaries_key: Join key in *boundaries*
        attributes_key: Join key in *attributes*
        dataset_name: Name stored in the RegionFrame metadata
        id_col: Region identifier column (defaults to *boundaries_key*)
        geometry_col: WKT geometry column
        crs: CRS of the geometries

    Returns:
        RegionFrame of the joined regions
    """
    for frame, key, label in (
        (boundaries, boundaries_key, "boundaries"),
        (attributes, attributes_key, "attributes"),
    ):
        if key not in frame.columns:
            raise KeyError(f"Join key '{key}' not found in {label} columns: {frame.columns}")

    dupes = attributes.filter(pl.col(attributes_key).is_duplicated())
    if dupes.height:
        raise ValueError(
            f"Attribute key '{attributes_key}' is not unique: "
            f"{sorted(set(dupes[attributes_key].to_list()))}"
        )

    left = boundaries.with_row_index("_order").with_columns(
        pl.col(boundaries_key).cast(pl.Utf8).alias("_join_key")
    )
    right = attributes.with_columns(
        pl.col(attributes_key).cast(pl.Utf8).alias("_join_key")
    ).drop(attributes_key)
    overlap = (set(right.columns) & set(left.columns)) - {"_join_key"}
    if overlap:
        right = right.drop(sorted(overlap))
        logger.debug("Dropping attribute columns shadowed by boundaries: %s", sorted(overlap))

    joined = (
        left.join(right, on="_join_key", how="left")
        .sort("_order")
        .drop(["_join_key", "_order"])
    )

    unmatched = set(boundaries[boundaries_key].cast(pl.Utf8).to_list()) - set(
        attributes[attributes_key].cast(pl.Utf8).to_list()
    )
    if unmatched:
        logger.warning(
            f"{len(unmatched)} regions have no attribute row: {sorted(unmatched)[:10]}"
        )

    id_col = id_col or boundaries_key
    attribute_cols = [c for c in joined.columns if c not in (id_col, geometry_col)]
    schema = RegionSchema(
        id_col=id_col,
        geometry_col=geometry_col,
        numeric_cols=[c for c in attribute_cols if is_numeric_col(joined.schema[c])],
        categorical_cols=[c for c in attribute_cols if is_categorical_col(joined.schema[c])],
    )
    metadata = RegionMetadata(dataset_name=dataset_name, crs=crs)
    logger.info("Joined %s regions with %s attribute columns", joined.height, len(attribute_cols))
    return RegionFrame.from_frame(joined, schema, metadata)


def load_regions(config: DatasetConfig) -> RegionFrame:
    """Read, join and optionally persist a dataset described by *config*."""
    attributes = read_attribute_table(config.attributes_path)
    boundaries, crs = read_boundaries(config.boundaries_path, crs=config.crs)
    region_frame = join_regions(
        boundaries,
        attributes,
        boundaries_key=config.boundaries_key,
        attributes_key=config.attributes_key,
        dataset_name=config.dataset_name,
        id_col=config.id_col,
        crs=crs or "EPSG:4326",
    ).with_metadata(
        sources={
            "attributes": str(config.attributes_path),
            "boundaries": str(config.boundaries_path),
        }
    )
    if config.output_path:
        write_regions(region_frame, config.output_path)
    return region_frame


def write_regions(region_frame: RegionFrame, path: str | Path) -> Path:
    """
    Persist a RegionFrame as Parquet plus a ``.meta.json`` sidecar.

    The sidecar holds the schema and metadata so :func:`read_regions` restores
    an equivalent RegionFrame.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = region_frame.collect()
    df.write_parquet(path)

    meta_path = path.with_suffix(".meta.json")
    meta_path.write_text(
        json.dumps(
            {
                "schema": region_frame.schema.model_dump(mode="json"),
                "metadata": region_frame.metadata.model_dump(mode="json"),
            },
            indent=2,
        )
    )
    logger.info(f"Saved {df.height} regions to {path}")
    return path


def read_regions(path: str | Path) -> RegionFrame:
    """Load a RegionFrame written by :func:`write_regions`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Region dataset not found: {path}")

    meta_path = path.with_suffix(".meta.json")
    if not meta_path.exists():
        raise FileNotFoundError(f"Metadata sidecar not found: {meta_path}")

    meta = json.loads(meta_path.read_text())
    schema = RegionSchema.model_validate(meta["schema"])
    metadata = RegionMetadata.model_validate(meta["metadata"])
    logger.info(f"Loading region dataset from: {path}")
    return RegionFrame(pl.scan_parquet(path), schema, metadata)


def to_geodataframe(region_frame: RegionFrame, columns: list[str] | None = None) -> Any:
    """
    Convert a RegionFrame into a ``geopandas.GeoDataFrame``.

    The WKT geometry column becomes the active geometry and the metadata CRS is
    attached. Missing numeric values become NaN.

    Args:
        region_frame: Regions to convert
        columns: Attribute columns to keep besides the id (defaults to all)

    Returns:
        GeoDataFrame with one row per region
    """
    import geopandas as gpd

    schema = region_frame.schema
    df = region_frame.collect()
    if columns is not None:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise KeyError(f"Columns not found in RegionFrame: {missing}")
        keep = [schema.id_col, *[c for c in columns if c != schema.id_col]]
        df = df.select(*keep, schema.geometry_col)

    geometry = gpd.GeoSeries.from_wkt(
        df[schema.geometry_col].to_list(), crs=region_frame.metadata.crs
    )
    return gpd.GeoDataFrame(df.drop(schema.geometry_col).to_pandas(), geometry=geometry)
