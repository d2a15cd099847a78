"""Tests for local Moran's I (LISA)."""

import numpy as np
import polars as pl
import pytest
from shapely.geometry import box

from regionflow.core.autocorrelation import moran_i
from regionflow.core.contiguity import build_contiguity
from regionflow.core.lisa import ClusterLabel, classify_clusters, local_moran
from regionflow.core.weights import row_standardize


@pytest.fixture
def strip_weights(strip_geometries):
    return row_standardize(build_contiguity(strip_geometries, ids=list("abcde")))


@pytest.fixture
def clustered_weights(grid):
    return row_standardize(build_contiguity(grid(6, 6)))


class TestLocalMoran:
    """Tests for local_moran."""

    def test_hand_computed_strip(self, strip_weights) -> None:
        result = local_moran([1.0, 2.0, 3.0, 4.0, 5.0], strip_weights, permutations=0)

        # m2 = 2, I_i = z_i / m2 * lag_i
        assert result.Is == pytest.approx([1.0, 0.5, 0.0, 0.5, 1.0])
        assert result.lag == pytest.approx([-1.0, -1.0, 0.0, 1.0, 1.0])
        assert result.quadrant == [3, 3, 3, 1, 1]

    def test_local_statistics_sum_to_global(self, grid) -> None:
        weights = row_standardize(build_contiguity(grid(5, 5)))
        x = np.random.default_rng(1).gamma(2.0, size=25)

        result = local_moran(x, weights, permutations=0)

        assert sum(result.Is) == pytest.approx(weights.s0 * moran_i(x, weights))

    def test_clustered_pattern_labels(self, clustered_values, clustered_weights) -> None:
        result = local_moran(clustered_values, clustered_weights, permutations=999, seed=8)
        counts = result.counts()

        assert counts["high-high"] > 0
        assert counts["low-low"] > 0
        assert counts["high-low"] == 0
        assert counts["low-high"] == 0
        assert counts["undefined"] == 0
        assert sum(counts.values()) == 36

    def test_interior_cells_are_significant(self, clustered_values, clustered_weights) -> None:
        result = local_moran(clustered_values, clustered_weights, permutations=999, seed=8)

        # Cell (2, 0) is high with an all-high neighborhood; (2, 5) the low mirror
        assert result.labels[12] == ClusterLabel.HIGH_HIGH
        assert result.labels[17] == ClusterLabel.LOW_LOW
        assert result.p_sim[12] < 0.05

    def test_pseudo_p_values_are_folded(self, grid) -> None:
        weights = row_standardize(build_contiguity(grid(5, 5)))
        x = np.random.default_rng(2).normal(size=25)
        permutations = 199

        result = local_moran(x, weights, permutations=permutations, seed=4)

        for p in result.p_sim:
            assert 1.0 / (permutations + 1) <= p <= (permutations / 2 + 1) / (permutations + 1)
        assert result.sim.shape == (25, permutations)

    def test_conditional_permutation_keeps_own_value(self, strip_weights) -> None:
        x = [1.0, 2.0, 3.0, 4.0, 5.0]
        result = local_moran(x, strip_weights, permutations=200, seed=0)

        # Region 0 has one neighbor, drawn from the other four centred values
        z = np.array(x) - 3.0
        possible = {z[0] / 2.0 * v for v in z[1:]}
        assert set(np.round(result.sim[0], 10)) <= {round(v, 10) for v in possible}

    def test_neighbor_draws_are_distinct_other_regions(self, strip_weights) -> None:
        # Powers of two: a sum of k draws has k set bits only if no value repeats.
        x = np.array([1.0, 2.0, 4.0, 8.0, 16.0])
        result = local_moran(x, strip_weights, permutations=300, seed=4)

        z = x - x.mean()
        m2 = float(z @ z) / x.size
        for i, k in [(0, 1), (2, 2), (4, 1)]:
            totals = np.rint(result.sim[i] * m2 / z[i] * k + k * x.mean()).astype(int)
            for total in totals:
                assert bin(total).count("1") == k
                assert not total & int(x[i])

    def test_island_is_undefined(self, strip_geometries) -> None:
        adjacency = build_contiguity([*strip_geometries, box(30, 30, 31, 31)])
        weights = row_standardize(adjacency, allow_islands=True)

        result = local_moran([1.0, 2.0, 3.0, 4.0, 5.0, 3.0], weights, permutations=99, seed=1)

        assert result.labels[5] == ClusterLabel.UNDEFINED
        assert result.Is[5] is None
        assert result.p_sim[5] is None
        assert result.quadrant[5] is None
        assert not result.defined[5]
        assert result.defined[:5].all()

    def test_to_frame_uses_nulls_for_undefined(self, strip_geometries) -> None:
        adjacency = build_contiguity([*strip_geometries, box(30, 30, 31, 31)], ids=list("abcdef"))
        weights = row_standardize(adjacency, allow_islands=True)

        df = local_moran([1.0, 2.0, 3.0, 4.0, 5.0, 3.0], weights, permutations=19, seed=1).to_frame(
            prefix="x_"
        )

        assert df.columns == [
            "region_id",
            "x_local_moran_i",
            "x_local_moran_lag",
            "x_local_moran_quadrant",
            "x_local_moran_p_sim",
            "x_lisa_cluster",
        ]
        last = df.row(5, named=True)
        assert last["region_id"] == "f"
        assert last["x_local_moran_i"] is None
        assert last["x_lisa_cluster"] == "undefined"
        assert df["x_local_moran_i"].is_nan().sum() == 0
        assert df.schema["x_local_moran_quadrant"] == pl.Int8

    def test_without_permutations_nothing_is_significant(self, strip_weights) -> None:
        result = local_moran([1.0, 2.0, 3.0, 4.0, 5.0], strip_weights, permutations=0)

        assert result.p_sim == [None] * 5
        assert result.quadrant == [3, 3, 3, 1, 1]
        assert result.labels == [ClusterLabel.NOT_SIGNIFICANT] * 5
        assert result.counts()["high-high"] == 0

    def test_seed_reproducibility(self, clustered_values, clustered_weights) -> None:
        first = local_moran(clustered_values, clustered_weights, permutations=49, seed=3)
        second = local_moran(clustered_values, clustered_weights, permutations=49, seed=3)

        assert first.p_sim == second.p_sim

    def test_zero_variance_raises(self, strip_weights) -> None:
        with pytest.raises(ValueError, match="variance"):
            local_moran([1.0] * 5, strip_weights)

    def test_invalid_significance(self, strip_weights) -> None:
        with pytest.raises(ValueError, match="significance"):
            local_moran([1.0, 2.0, 3.0, 4.0, 5.0], strip_weights, significance=1.5)

    def test_missing_values_rejected(self, strip_weights) -> None:
        with pytest.raises(ValueError, match="missing"):
            local_moran([1.0, None, 3.0, 4.0, 5.0], strip_weights)


class TestClassifyClusters:
    """Tests for classify_clusters."""

    def test_labels(self) -> None:
        labels = classify_clusters([1, 2, None, 4, 3], [0.01, 0.2, None, 0.04, 0.05], 0.05)

        assert labels == [
            ClusterLabel.HIGH_HIGH,
            ClusterLabel.NOT_SIGNIFICANT,
            ClusterLabel.UNDEFINED,
            ClusterLabel.HIGH_LOW,
            ClusterLabel.LOW_LOW,
        ]

    def test_threshold_is_respected(self) -> None:
        assert classify_clusters([1], [0.03], 0.01) == [ClusterLabel.NOT_SIGNIFICANT]

    def test_missing_p_value_is_not_significant(self) -> None:
        labels = classify_clusters([1, 4, None], [None, None, None], 0.05)

        assert labels == [
            ClusterLabel.NOT_SIGNIFICANT,
            ClusterLabel.NOT_SIGNIFICANT,
            ClusterLabel.UNDEFINED,
        ]
