"""Tests for the NY Lyme dataset mapping."""

from __future__ import annotations

import polars as pl
import pytest

from regionflow.core.loaders import read_regions
from regionflow.datasets.ny_lyme import (
    NY_LYME_SCHEMA,
    RATE_COL,
    create_ny_lyme_metadata,
    load_ny_lyme,
    save_ny_lyme,
)
from regionflow.datasets.ny_lyme.mapping import clean_lyme_attributes

COUNTIES = ["Albany", "Bronx", "Columbia", "Dutchess", "Erie", "Greene"]


@pytest.fixture()
def county_files(sample_data_dir, grid):
    """Boundary table (WKT parquet) and attribute CSV for six grid counties."""
    boundaries = pl.DataFrame(
        {
            "NAME": COUNTIES,
            "FIPS_CODE": [36001, 36005, 36021, 36027, 36029, 36039],
            "ABBREV": ["ALBA", "BRON", "COLU", "DUTC", "ERIE", "GREE"],
            "geometry": [g.wkt for g in grid(2, 3, size=1000.0)],
        }
    )
    boundaries_path = sample_data_dir / "counties.parquet"
    boundaries.write_parquet(boundaries_path)

    # Greene is missing from the extract and Erie's rate is suppressed.
    attributes_path = sample_data_dir / "LymeData.csv"
    attributes_path.write_text(
        "County.Name,Health.Topic,Indicator,Measure.Unit,Percent.Rate,Data.Years,Data.Source\n"
        "Albany,Communicable Disease,Lyme disease incidence,Per 100000,61.2,2014-2016,NYSDOH\n"
        "Bronx,Communicable Disease,Lyme disease incidence,Per 100000,4.1,2014-2016,NYSDOH\n"
        "Columbia,Communicable Disease,Lyme disease incidence,Per 100000,402.7,2014-2016,NYSDOH\n"
        "Dutchess,Communicable Disease,Lyme disease incidence,Per 100000,212.9,2014-2016,NYSDOH\n"
        "Erie,Communicable Disease,Lyme disease incidence,Per 100000,s,2014-2016,NYSDOH\n"
    )
    return attributes_path, boundaries_path


def test_load_ny_lyme_selects_and_renames(county_files) -> None:
    attributes_path, boundaries_path = county_files

    region_frame = load_ny_lyme(attributes_path, boundaries_path, crs="EPSG:26918")
    df = region_frame.collect()

    assert df.columns == [
        "NAME",
        "FIPS_CODE",
        "Health.Topic",
        "Indicator",
        "Measure.Unit",
        RATE_COL,
        "Data.Years",
        "Data.Source",
        "geometry",
    ]
    assert df["NAME"].to_list() == COUNTIES
    assert df["FIPS_CODE"].dtype == pl.Utf8
    assert df[RATE_COL].dtype == pl.Float64
    assert df[RATE_COL].to_list()[:4] == pytest.approx([61.2, 4.1, 402.7, 212.9])
    assert df[RATE_COL][4] is None
    assert df[RATE_COL][5] is None

    assert region_frame.schema == NY_LYME_SCHEMA
    assert region_frame.metadata.crs == "EPSG:26918"
    assert region_frame.metadata.bounds == (0.0, 0.0, 3000.0, 2000.0)
    assert region_frame.metadata.sources["attributes"] == str(attributes_path)


def test_load_ny_lyme_persists(county_files, sample_data_dir) -> None:
    attributes_path, boundaries_path = county_files
    output = sample_data_dir / "processed" / "ny_lyme.parquet"

    original = load_ny_lyme(attributes_path, boundaries_path, output_path=output)
    restored = read_regions(output)

    assert restored.ids() == original.ids()
    assert restored.metadata.dataset_name == "ny_lyme"
    assert restored.metadata.bounds == original.metadata.bounds
    assert RATE_COL in restored.metadata.feature_catalog


def test_save_ny_lyme_returns_path(county_files, sample_data_dir) -> None:
    region_frame = load_ny_lyme(*county_files)
    path = save_ny_lyme(region_frame, sample_data_dir / "copy.parquet")

    assert path.exists()
    assert path.with_suffix(".meta.json").exists()


def test_missing_rate_column(sample_data_dir, county_files) -> None:
    _, boundaries_path = county_files
    bad = sample_data_dir / "bad.csv"
    bad.write_text("County.Name,Rate\nAlbany,1.0\n")

    with pytest.raises(KeyError, match="Percent.Rate"):
        load_ny_lyme(bad, boundaries_path)


def test_missing_selected_columns(sample_data_dir, county_files) -> None:
    _, boundaries_path = county_files
    thin = sample_data_dir / "thin.csv"
    thin.write_text("County.Name,Percent.Rate\nAlbany,1.0\n")

    with pytest.raises(KeyError, match="Health.Topic"):
        load_ny_lyme(thin, boundaries_path)


def test_clean_lyme_attributes_warns_on_nulls(caplog) -> None:
    df = pl.DataFrame({"County.Name": ["A", "B"], "Percent.Rate": ["1.5", ""]})

    with caplog.at_level("WARNING"):
        cleaned = clean_lyme_attributes(df)

    assert cleaned.columns == ["County.Name", RATE_COL]
    assert cleaned[RATE_COL].to_list() == [1.5, None]
    assert "1 counties" in caplog.text


def test_metadata_factory() -> None:
    metadata = create_ny_lyme_metadata(crs="EPSG:26918", custom={"year": "2014-2016"})

    assert metadata.dataset_name == "ny_lyme"
    assert metadata.custom["year"] == "2014-2016"
    assert metadata.feature_catalog[RATE_COL]["source_column"] == "Percent.Rate"
