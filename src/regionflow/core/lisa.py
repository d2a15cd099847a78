"""Local Moran's I (LISA) with conditional permutation inference."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import polars as pl

from regionflow.core.utils import as_float_vector, get_logger, resolve_rng
from regionflow.core.weights import SpatialWeights

logger = get_logger(__name__)

PERMUTATIONS = 999


class ClusterLabel(str, Enum):
    """LISA cluster categories."""

    HIGH_HIGH = "high-high"
    LOW_HIGH = "low-high"
    LOW_LOW = "low-low"
    HIGH_LOW = "high-low"
    NOT_SIGNIFICANT = "not significant"
    UNDEFINED = "undefined"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value


# Quadrant numbering of the Moran scatterplot, counter-clockwise from upper right.
QUADRANT_LABELS = {
    1: ClusterLabel.HIGH_HIGH,
    2: ClusterLabel.LOW_HIGH,
    3: ClusterLabel.LOW_LOW,
    4: ClusterLabel.HIGH_LOW,
}

CLUSTER_COLORS = {
    ClusterLabel.HIGH_HIGH: "#d7191c",
    ClusterLabel.LOW_LOW: "#2c7bb6",
    ClusterLabel.LOW_HIGH: "#abd9e9",
    ClusterLabel.HIGH_LOW: "#fdae61",
    ClusterLabel.NOT_SIGNIFICANT: "#d3d3d3",
    ClusterLabel.UNDEFINED: "#ffffff",
}


@dataclass
class LocalMoranResult:
    """Per-region local Moran's I.

    Regions without neighbors are undefined: their statistic, lag, quadrant and
    pseudo p-value are None and their label is ``ClusterLabel.UNDEFINED``.

    Attributes:
        Is: Local statistic per region
        lag: Weighted neighbor average of the centred values
        quadrant: Moran scatterplot quadrant (1=HH, 2=LH, 3=LL, 4=HL)
        p_sim: Conditional-permutation pseudo p-value per region
        labels: Cluster label per region at ``significance``
        defined: Mask of regions with at least one neighbor
        significance: Threshold used for ``labels``
        permutations: Number of permutations per region
        sim: Simulated statistics, shape (n, permutations); rows of undefined regions are NaN
        ids: Region identifiers
    """

    Is: list[float | None]
    lag: list[float | None]
    quadrant: list[int | None]
    p_sim: list[float | None]
    labels: list[ClusterLabel]
    defined: np.ndarray
    significance: float
    permutations: int
    sim: np.ndarray = field(default_factory=lambda: np.empty((0, 0)))
    ids: tuple[Any, ...] = ()

    @property
    def n(self) -> int:
        """Number of regions."""
        return len(self.Is)

    def counts(self) -> dict[str, int]:
        """Number of regions per cluster label."""
        counts = {label.value: 0 for label in ClusterLabel}
        for label in self.labels:
            counts[label.value] += 1
        return counts

    def to_frame(self, prefix: str = "") -> pl.DataFrame:
        """Return per-region results as a Polars DataFrame with null for undefined."""
        data: dict[str, Any] = {}
        if self.ids:
            data["region_id"] = list(self.ids)
        data[f"{prefix}local_moran_i"] = pl.Series(self.Is, dtype=pl.Float64)
        data[f"{prefix}local_moran_lag"] = pl.Series(self.lag, dtype=pl.Float64)
        data[f"{prefix}local_moran_quadrant"] = pl.Series(self.quadrant, dtype=pl.Int8)
        data[f"{prefix}local_moran_p_sim"] = pl.Series(self.p_sim, dtype=pl.Float64)
        data[f"{prefix}lisa_cluster"] = [label.value for label in self.labels]
        return pl.DataFrame(data)


def classify_clusters(
    quadrant: list[int | None],
    p_sim: list[float | None],
    significance: float = 0.05,
) -> list[ClusterLabel]:
    """
    Map quadrants and pseudo p-values to cluster labels.

    Regions with no quadrant are undefined. Without a p-value (no permutations)
    nothing has been tested, so defined regions are not significant.
    """
    labels: list[ClusterLabel] = []
    for q, p in zip(quadrant, p_sim):
        if q is None:
            labels.append(ClusterLabel.UNDEFINED)
        elif p is None or p > significance:
            labels.append(ClusterLabel.NOT_SIGNIFICANT)
        else:
            labels.append(QUADRANT_LABELS[q])
    return labels


def local_moran(
    values: Any,
    weights: SpatialWeights,
    *,
    permutations: int = PERMUTATIONS,
    significance: float = 0.05,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> LocalMoranResult:
    """
    Compute local Moran's I for every region.

    ``I_i = (z_i / m2) * sum_j w_ij z_j`` with ``z = x - mean(x)`` and
    ``m2 = sum(z^2) / n``. For inference region i keeps its own value while its
    neighbor slots are filled by values drawn without replacement from the other
    n - 1 regions. The pseudo p-value counts simulations at least as extreme as
    the observed value on the tail it falls in.

    Args:
        values: Attribute vector aligned with the weight rows (no missing values)
        weights: Spatial weights, typically row-standardized with islands allowed
        permutations: Conditional permutations per region; 0 skips inference
        significance: Pseudo p-value threshold for cluster labels
        rng: Random generator used for permutations
        seed: Seed for a fresh generator when *rng* is not given

    Returns:
        LocalMoranResult
    """
    if permutations < 0:
        raise ValueError("permutations must be non-negative")
    if not 0.0 < significance < 1.0:
        raise ValueError(f"significance must be in (0, 1), got {significance}")

    x = as_float_vector(values)
    n = x.size
    if n != weights.n:
        raise ValueError(f"Expected {weights.n} values, got {n}")
    if n < 3:
        raise ValueError(f"Local Moran's I needs at least 3 regions, got {n}")

    z = x - x.mean()
    m2 = float(z @ z) / n
    if m2 <= 0.0:
        raise ValueError("Attribute has zero variance; local Moran's I is undefined")

    w = weights.sparse.tocsr()
    lag = np.asarray(w @ z).ravel()
    stat = z / m2 * lag

    defined = np.diff(w.indptr) > 0
    if weights.islands:
        defined[list(weights.islands)] = False

    quadrant: list[int | None] = []
    for i in range(n):
        if not defined[i]:
            quadrant.append(None)
            continue
        high = z[i] > 0
        high_lag = lag[i] > 0
        if high and high_lag:
            quadrant.append(1)
        elif high_lag:
            quadrant.append(2)
        elif not high:
            quadrant.append(3)
        else:
            quadrant.append(4)

    p_sim: list[float | None] = [None] * n
    sim = np.empty((0, 0))
    if permutations:
        generator = resolve_rng(rng, seed)
        sim = np.full((n, permutations), np.nan)
        # One row of shuffled indices into the other n - 1 values per permutation.
        others = np.tile(np.arange(n - 1), (permutations, 1))
        for i in range(n):
            if not defined[i]:
                continue
            start, end = w.indptr[i], w.indptr[i + 1]
            w_i = w.data[start:end]
            k = w_i.size
            if k > n - 1:
                raise ValueError(f"Region {i} has more neighbors than other regions")
            pool = np.delete(z, i)
            draws = generator.permuted(others, axis=1)[:, :k]
            sim[i] = z[i] / m2 * (pool[draws] @ w_i)
            larger = int((sim[i] >= stat[i]).sum())
            extreme = min(larger, permutations - larger)
            p_sim[i] = (extreme + 1.0) / (permutations + 1.0)

    labels = classify_clusters(quadrant, p_sim, significance)
    result = LocalMoranResult(
        Is=[float(stat[i]) if defined[i] else None for i in range(n)],
        lag=[float(lag[i]) if defined[i] else None for i in range(n)],
        quadrant=quadrant,
        p_sim=p_sim,
        labels=labels,
        defined=defined,
        significance=significance,
        permutations=permutations,
        sim=sim,
        ids=weights.ids,
    )
    logger.info("Local Moran clusters: %s", result.counts())
    return result
