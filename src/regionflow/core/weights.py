"""Row-standardized spatial weights derived from a neighbor relation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import scipy.sparse as sp

from regionflow.core.contiguity import Adjacency
from regionflow.core.utils import as_float_vector, get_logger

logger = get_logger(__name__)


class IslandError(ValueError):
    """Raised when a region without neighbors reaches weight normalization."""

    def __init__(self, islands: tuple[int, ...], labels: list[Any] | None = None) -> None:
        self.islands = islands
        shown = labels if labels is not None else list(islands)
        super().__init__(
            f"{len(islands)} regions have no neighbors and cannot be row-standardized: "
            f"{shown}. Drop them or pass allow_islands=True to keep them as zero rows."
        )


@dataclass(frozen=True, eq=False)
class SpatialWeights:
    """Sparse spatial weight matrix.

    Attributes:
        sparse: CSR matrix with ``sparse[i, j] > 0`` only when j neighbors i
        ids: Region identifiers aligned with matrix rows
        style: Normalization style ("r" for row-standardized, "b" for binary)
        islands: Indices of regions whose rows are all zero
    """

    sparse: sp.csr_matrix
    ids: tuple[Any, ...] = ()
    style: str = "r"
    islands: tuple[int, ...] = ()

    @property
    def n(self) -> int:
        """Number of regions."""
        return int(self.sparse.shape[0])

    @property
    def s0(self) -> float:
        """Sum of all weights."""
        return float(self.sparse.sum())

    @property
    def s1(self) -> float:
        """Half the sum of squared symmetric weights, 0.5 * sum((w_ij + w_ji)^2)."""
        sym = self.sparse + self.sparse.T
        return float(0.5 * sym.multiply(sym).sum())

    @property
    def s2(self) -> float:
        """Sum over regions of (row sum + column sum)^2."""
        row = np.asarray(self.sparse.sum(axis=1)).ravel()
        col = np.asarray(self.sparse.sum(axis=0)).ravel()
        return float(((row + col) ** 2).sum())

    @property
    def row_sums(self) -> np.ndarray:
        """Sum of outgoing weights per region."""
        return np.asarray(self.sparse.sum(axis=1)).ravel()

    def lag(self, values: Any) -> np.ndarray:
        """Spatial lag ``W @ x``: the weighted neighbor value of each region."""
        x = as_float_vector(values)
        if x.size != self.n:
            raise ValueError(f"Expected {self.n} values, got {x.size}")
        return np.asarray(self.sparse @ x).ravel()

    def dense(self) -> np.ndarray:
        """Return the weights as a dense array."""
        return self.sparse.toarray()

    def subset(self, indices: Any) -> SpatialWeights:
        """Restrict rows and columns to *indices* without renormalizing."""
        idx = np.asarray(indices, dtype=int)
        sub = self.sparse[idx][:, idx].tocsr()
        row = np.asarray(sub.sum(axis=1)).ravel()
        return SpatialWeights(
            sparse=sub,
            ids=tuple(self.ids[i] for i in idx) if self.ids else (),
            style=self.style,
            islands=tuple(int(i) for i in np.flatnonzero(row == 0)),
        )


def binary_weights(adjacency: Adjacency) -> SpatialWeights:
    """Binary (0/1) weights from an adjacency relation."""
    rows = np.repeat(np.arange(adjacency.n), adjacency.cardinalities)
    cols = np.fromiter(
        (j for nbrs in adjacency.neighbors for j in nbrs), dtype=int, count=adjacency.n_links
    )
    data = np.ones(rows.size, dtype=float)
    matrix = sp.csr_matrix((data, (rows, cols)), shape=(adjacency.n, adjacency.n))
    return SpatialWeights(sparse=matrix, ids=adjacency.ids, style="b", islands=adjacency.islands)


def row_standardize(adjacency: Adjacency, *, allow_islands: bool = False) -> SpatialWeights:
    """
    Row-standardized weights: each neighbor of region i gets ``1 / |neighbors(i)|``.

    Args:
        adjacency: Neighbor relation
        allow_islands: Keep zero-neighbor regions as explicit all-zero rows recorded
            in ``SpatialWeights.islands`` instead of failing

    Returns:
        SpatialWeights whose non-island rows sum to 1

    Raises:
        IslandError: If some region has no neighbors and ``allow_islands`` is False
    """
    islands = adjacency.islands
    if islands and not allow_islands:
        labels = [adjacency.ids[i] for i in islands] if adjacency.ids else None
        raise IslandError(islands, labels)

    binary = binary_weights(adjacency)
    card = adjacency.cardinalities.astype(float)
    scale = np.zeros_like(card)
    nz = card > 0
    scale[nz] = 1.0 / card[nz]
    matrix = sp.diags(scale).dot(binary.sparse).tocsr()

    if islands:
        logger.warning(f"Keeping {len(islands)} island regions as zero rows in weights")
    logger.debug(
        "Row-standardized weights: n=%s, links=%s, s0=%.3f",
        adjacency.n,
        adjacency.n_links,
        float(matrix.sum()),
    )
    return SpatialWeights(sparse=matrix, ids=adjacency.ids, style="r", islands=islands)
