"""Common test fixtures and utilities."""

from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import polars as pl
import pytest
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from regionflow.core.region_frame import RegionFrame
from regionflow.core.schema import RegionMetadata, RegionSchema
from regionflow.core.utils import is_categorical_col, is_numeric_col

RegionFrameFactory = Callable[..., RegionFrame]


def box_grid(n_rows: int, n_cols: int, size: float = 1.0) -> list[BaseGeometry]:
    """Unit squares laid out row-major; cell (r, c) has index r * n_cols + c."""
    return [
        box(c * size, r * size, (c + 1) * size, (r + 1) * size)
        for r in range(n_rows)
        for c in range(n_cols)
    ]


@pytest.fixture
def sample_data_dir(tmp_path):
    """Create a temporary directory with sample data."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def make_region_frame() -> RegionFrameFactory:
    """Factory building a RegionFrame from geometries and attribute columns."""

    def factory(
        geometries: Sequence[BaseGeometry],
        ids: Sequence[Any] | None = None,
        *,
        crs: str = "EPSG:26918",
        dataset_name: str = "test-regions",
        **columns: Sequence[Any],
    ) -> RegionFrame:
        region_ids = list(ids) if ids is not None else [f"r{i}" for i in range(len(geometries))]
        df = pl.DataFrame(
            {
                "region_id": region_ids,
                **{name: list(values) for name, values in columns.items()},
                "geometry": [g.wkt for g in geometries],
            }
        )
        schema = RegionSchema(
            id_col="region_id",
            numeric_cols=[c for c in columns if is_numeric_col(df.schema[c])],
            categorical_cols=[c for c in columns if is_categorical_col(df.schema[c])],
        )
        return RegionFrame(df.lazy(), schema, RegionMetadata(dataset_name=dataset_name, crs=crs))

    return factory


@pytest.fixture
def strip_geometries() -> list[BaseGeometry]:
    """Five squares in a row: queen neighbors form the chain 0-1-2-3-4."""
    return box_grid(1, 5)


@pytest.fixture
def strip_frame(make_region_frame: RegionFrameFactory, strip_geometries) -> RegionFrame:
    """Strip of five regions with values 1..5 (Moran's I = 0.6 under row standardization)."""
    return make_region_frame(strip_geometries, value=[1.0, 2.0, 3.0, 4.0, 5.0])


@pytest.fixture
def clustered_values() -> np.ndarray:
    """6x6 grid values: left three columns high, right three low."""
    grid = np.zeros((6, 6))
    grid[:, :3] = 1.0
    return grid.ravel()


@pytest.fixture
def clustered_frame(make_region_frame: RegionFrameFactory, clustered_values) -> RegionFrame:
    """6x6 grid with a strong east-west split."""
    noise = np.linspace(0.0, 0.1, 36)
    return make_region_frame(box_grid(6, 6), rate=(clustered_values * 10 + 1 + noise).tolist())


@pytest.fixture
def grid() -> Callable[..., list[BaseGeometry]]:
    """Expose :func:`box_grid` to tests."""
    return box_grid
