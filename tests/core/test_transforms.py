"""Tests for distribution summaries and transforms."""

import logging
import math

import pytest

from regionflow.core.transforms import drop_missing, log_transform, summarize_distribution


@pytest.fixture
def skewed_frame(make_region_frame, grid):
    rates = [1.0, 1.5, 2.0, 2.0, 2.5, 3.0, 3.0, 4.0, 150.0]
    return make_region_frame(grid(3, 3), rate=rates)


class TestSummarizeDistribution:
    """Tests for summarize_distribution."""

    def test_basic_statistics(self, strip_frame) -> None:
        summary = summarize_distribution(strip_frame, "value")

        assert summary.count == 5
        assert summary.missing == 0
        assert summary.mean == pytest.approx(3.0)
        assert summary.median == pytest.approx(3.0)
        assert summary.min == 1.0
        assert summary.max == 5.0
        assert summary.skewness == pytest.approx(0.0, abs=1e-12)
        assert not summary.is_skewed()

    def test_skewed_column_warns(self, skewed_frame, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            summary = summarize_distribution(skewed_frame, "rate")

        assert summary.is_skewed()
        assert "skewed" in caplog.text

    def test_missing_values_counted(self, make_region_frame, strip_geometries) -> None:
        frame = make_region_frame(strip_geometries, value=[1.0, None, 3.0, None, 5.0])

        summary = summarize_distribution(frame, "value")

        assert summary.count == 3
        assert summary.missing == 2
        assert summary.to_dict()["column"] == "value"


class TestLogTransform:
    """Tests for log_transform."""

    def test_adds_log_column(self, skewed_frame) -> None:
        result = log_transform(skewed_frame, "rate")

        df = result.collect()
        assert "log_rate" in df.columns
        assert df["log_rate"][0] == pytest.approx(0.0)
        assert df["log_rate"][8] == pytest.approx(math.log(150.0))

    def test_reduces_skew(self, skewed_frame) -> None:
        before = summarize_distribution(skewed_frame, "rate")
        after = summarize_distribution(log_transform(skewed_frame, "rate"), "log_rate")

        assert abs(after.skewness) < abs(before.skewness)

    def test_registers_provenance(self, skewed_frame) -> None:
        result = log_transform(skewed_frame, "rate", output_col="ln_rate")

        provenance = result.metadata.feature_provenance["ln_rate"]
        assert provenance.produced_by == "LogTransformStep"
        assert provenance.inputs == ["rate"]
        assert "transform" in provenance.tags
        assert "ln_rate" in result.schema.numeric_cols

    def test_rejects_non_positive_values(self, make_region_frame, strip_geometries) -> None:
        frame = make_region_frame(strip_geometries, value=[0.0, 1.0, 2.0, 3.0, 4.0])

        with pytest.raises(ValueError, match="1 values are <= 0"):
            log_transform(frame, "value")

    def test_log1p_accepts_zero(self, make_region_frame, strip_geometries) -> None:
        frame = make_region_frame(strip_geometries, value=[0.0, 1.0, 2.0, 3.0, 4.0])

        df = log_transform(frame, "value", method="log1p").collect()

        assert df["log1p_value"][0] == pytest.approx(0.0)
        assert df["log1p_value"][1] == pytest.approx(math.log(2.0))

    def test_missing_values_stay_missing(self, make_region_frame, strip_geometries) -> None:
        frame = make_region_frame(strip_geometries, value=[1.0, None, 3.0, 4.0, 5.0])

        df = log_transform(frame, "value").collect()

        assert df["log_value"].null_count() == 1

    def test_rejects_unknown_method(self, strip_frame) -> None:
        with pytest.raises(ValueError, match="method"):
            log_transform(strip_frame, "value", method="sqrt")  # type: ignore[arg-type]

    def test_input_frame_unchanged(self, strip_frame) -> None:
        log_transform(strip_frame, "value")

        assert "log_value" not in strip_frame.collect().columns
        assert "log_value" not in strip_frame.metadata.feature_provenance


class TestDropMissing:
    """Tests for drop_missing."""

    def test_drops_null_and_nan(self, make_region_frame, strip_geometries) -> None:
        frame = make_region_frame(strip_geometries, value=[1.0, None, float("nan"), 4.0, 5.0])

        result = drop_missing(frame, ["value"])

        assert result.ids() == ["r0", "r3", "r4"]

    def test_noop_without_missing(self, strip_frame) -> None:
        assert drop_missing(strip_frame, ["value"]).count() == 5


@pytest.mark.parametrize(
    "operation",
    [
        lambda rf: summarize_distribution(rf, "missing_col"),
        lambda rf: log_transform(rf, "missing_col"),
        lambda rf: drop_missing(rf, ["value", "missing_col"]),
    ],
)
def test_unknown_column_raises_key_error(strip_frame, operation) -> None:
    with pytest.raises(KeyError, match="missing_col"):
        operation(strip_frame)
