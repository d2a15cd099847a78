"""Global Moran's I with analytical and permutation inference."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np
from scipy import stats

from regionflow.core.utils import as_float_vector, get_logger, resolve_rng
from regionflow.core.weights import SpatialWeights

logger = get_logger(__name__)

Alternative = Literal["greater", "less", "two-sided"]

PERMUTATIONS = 999


def _analytical_p(z: float, alternative: Alternative) -> float:
    if alternative == "greater":
        return float(stats.norm.sf(z))
    if alternative == "less":
        return float(stats.norm.cdf(z))
    return float(2.0 * stats.norm.sf(abs(z)))


def _permutation_p(observed: float, sim: np.ndarray, alternative: Alternative) -> float:
    permutations = sim.size
    if alternative == "greater":
        extreme = int((sim >= observed).sum())
    elif alternative == "less":
        extreme = int((sim <= observed).sum())
    else:
        larger = int((sim >= observed).sum())
        extreme = min(larger, permutations - larger)
    return (extreme + 1.0) / (permutations + 1.0)


def moran_i(values: Any, weights: SpatialWeights) -> float:
    """
    Compute the global Moran's I statistic.

    ``I = (n / S0) * sum_ij w_ij z_i z_j / sum_i z_i^2`` with ``z = x - mean(x)``.
    """
    x = as_float_vector(values)
    if x.size != weights.n:
        raise ValueError(f"Expected {weights.n} values, got {x.size}")
    z = x - x.mean()
    z2ss = float(z @ z)
    if z2ss <= 0.0:
        raise ValueError("Attribute has zero variance; Moran's I is undefined")
    s0 = weights.s0
    if s0 <= 0.0:
        raise ValueError("Sum of weights is zero; Moran's I is undefined")
    return float(x.size / s0 * (z @ (weights.sparse @ z)) / z2ss)


@dataclass
class GlobalMoranResult:
    """Outcome of a global Moran's I test.

    Attributes:
        I: Observed statistic
        EI: Expected value under spatial randomness, -1/(n-1)
        VI_norm: Variance under the normality assumption
        VI_rand: Variance under the randomization assumption (None when n <= 3)
        z_norm: z-score under normality
        z_rand: z-score under randomization (None when n <= 3)
        p_norm: Analytical p-value under normality for ``alternative``
        p_rand: Analytical p-value under randomization (None when n <= 3)
        p_sim: Permutation pseudo p-value (None when permutations == 0)
        sim: Statistic computed for each permutation
        n: Number of regions used in the test
        permutations: Number of permutations drawn
        alternative: Alternative hypothesis direction
        excluded: Region indices dropped from the test (islands)
    """

    I: float  # noqa: E741
    EI: float
    VI_norm: float
    VI_rand: float | None
    z_norm: float
    z_rand: float | None
    p_norm: float
    p_rand: float | None
    n: int
    alternative: str
    permutations: int = 0
    p_sim: float | None = None
    sim: np.ndarray = field(default_factory=lambda: np.empty(0))
    excluded: tuple[int, ...] = ()

    @property
    def EI_sim(self) -> float | None:
        """Mean of the permutation distribution."""
        return float(self.sim.mean()) if self.sim.size else None

    @property
    def seI_sim(self) -> float | None:
        """Standard deviation of the permutation distribution."""
        return float(self.sim.std()) if self.sim.size else None

    @property
    def z_sim(self) -> float | None:
        """Observed statistic standardized by the permutation distribution."""
        if not self.sim.size or not self.seI_sim:
            return None
        return float((self.I - self.sim.mean()) / self.seI_sim)

    def summary(self) -> dict[str, Any]:
        """Plain-dict summary without the simulated distribution."""
        return {
            "I": self.I,
            "EI": self.EI,
            "VI_norm": self.VI_norm,
            "VI_rand": self.VI_rand,
            "z_norm": self.z_norm,
            "z_rand": self.z_rand,
            "p_norm": self.p_norm,
            "p_rand": self.p_rand,
            "p_sim": self.p_sim,
            "EI_sim": self.EI_sim,
            "seI_sim": self.seI_sim,
            "z_sim": self.z_sim,
            "n": self.n,
            "permutations": self.permutations,
            "alternative": self.alternative,
            "excluded": list(self.excluded),
        }


def global_moran(
    values: Any,
    weights: SpatialWeights,
    *,
    permutations: int = PERMUTATIONS,
    alternative: Alternative = "greater",
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> GlobalMoranResult:
    """
    Test for global spatial autocorrelation with Moran's I.

    Island regions recorded on *weights* are excluded before testing; because
    contiguity is symmetric no other region points at them, so the remaining rows
    stay row-standardized.

    Args:
        values: Attribute vector aligned with the weight rows (no missing values)
        weights: Spatial weights, typically row-standardized
        permutations: Number of random permutations; 0 skips the Monte Carlo test
        alternative: "greater" (positive autocorrelation), "less" or "two-sided"
        rng: Random generator used for permutations
        seed: Seed for a fresh generator when *rng* is not given

    Returns:
        GlobalMoranResult
    """
    if alternative not in ("greater", "less", "two-sided"):
        raise ValueError(f"Unsupported alternative: {alternative!r}")
    if permutations < 0:
        raise ValueError("permutations must be non-negative")

    x = as_float_vector(values)
    if x.size != weights.n:
        raise ValueError(f"Expected {weights.n} values, got {x.size}")

    excluded = weights.islands
    if excluded:
        keep = np.setdiff1d(np.arange(weights.n), np.asarray(excluded, dtype=int))
        logger.warning(f"Excluding {len(excluded)} island regions from global Moran's I")
        x = x[keep]
        weights = weights.subset(keep)

    n = x.size
    if n < 3:
        raise ValueError(f"Global Moran's I needs at least 3 regions, got {n}")

    observed = moran_i(x, weights)
    z = x - x.mean()

    s0, s1, s2 = weights.s0, weights.s1, weights.s2
    s02 = s0 * s0
    n2 = n * n
    ei = -1.0 / (n - 1)

    vi_norm = (n2 * s1 - n * s2 + 3 * s02) / ((n - 1) * (n + 1) * s02) - ei * ei
    z_norm = (observed - ei) / np.sqrt(vi_norm)

    vi_rand: float | None = None
    z_rand: float | None = None
    p_rand: float | None = None
    if n > 3:
        k = (np.sum(z**4) / n) / (np.sum(z**2) / n) ** 2
        a = n * ((n2 - 3 * n + 3) * s1 - n * s2 + 3 * s02)
        b = k * ((n2 - n) * s1 - 2 * n * s2 + 6 * s02)
        vi_rand = float((a - b) / ((n - 1) * (n - 2) * (n - 3) * s02) - ei * ei)
        if vi_rand > 0:
            z_rand = float((observed - ei) / np.sqrt(vi_rand))
            p_rand = _analytical_p(z_rand, alternative)

    result = GlobalMoranResult(
        I=observed,
        EI=ei,
        VI_norm=float(vi_norm),
        VI_rand=vi_rand,
        z_norm=float(z_norm),
        z_rand=z_rand,
        p_norm=_analytical_p(float(z_norm), alternative),
        p_rand=p_rand,
        n=n,
        alternative=alternative,
        permutations=permutations,
        excluded=excluded,
    )

    if permutations:
        generator = resolve_rng(rng, seed)
        z2ss = float(z @ z)
        scale = n / s0 / z2ss
        sim = np.empty(permutations)
        for p in range(permutations):
            zp = generator.permutation(z)
            sim[p] = scale * float(zp @ (weights.sparse @ zp))
        result.sim = sim
        result.p_sim = _permutation_p(observed, sim, alternative)

    logger.info(
        "Global Moran's I=%.4f (E[I]=%.4f, p_norm=%.4g, p_sim=%s, n=%s)",
        result.I,
        result.EI,
        result.p_norm,
        f"{result.p_sim:.4g}" if result.p_sim is not None else "n/a",
        n,
    )
    return result
