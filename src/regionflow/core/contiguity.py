"""Contiguity neighbor graphs built from region polygons."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import numpy as np
from shapely import STRtree
from shapely.geometry.base import BaseGeometry

from regionflow.core.utils import get_logger

if TYPE_CHECKING:
    from regionflow.core.region_frame import RegionFrame

logger = get_logger(__name__)

Criterion = Literal["queen", "rook"]


@dataclass(frozen=True)
class Adjacency:
    """Neighbor relation over an ordered collection of regions.

    Attributes:
        neighbors: For each region index, the sorted indices of its neighbors
        ids: Region identifiers aligned with ``neighbors``
        criterion: Contiguity criterion used ("queen" or "rook")
        tolerance: Boundary distance under which regions count as touching
    """

    neighbors: tuple[tuple[int, ...], ...]
    ids: tuple[Any, ...] = field(default=())
    criterion: str = "queen"
    tolerance: float = 0.0

    def __post_init__(self) -> None:
        if self.ids and len(self.ids) != len(self.neighbors):
            raise ValueError(
                f"ids has {len(self.ids)} entries but neighbors has {len(self.neighbors)}"
            )
        n = len(self.neighbors)
        for i, nbrs in enumerate(self.neighbors):
            for j in nbrs:
                if j == i:
                    raise ValueError(f"Region {i} lists itself as a neighbor")
                if not 0 <= j < n:
                    raise ValueError(f"Region {i} has out-of-range neighbor index {j}")

    @property
    def n(self) -> int:
        """Number of regions."""
        return len(self.neighbors)

    @property
    def cardinalities(self) -> np.ndarray:
        """Number of neighbors per region."""
        return np.array([len(nbrs) for nbrs in self.neighbors], dtype=int)

    @property
    def islands(self) -> tuple[int, ...]:
        """Indices of regions without neighbors."""
        return tuple(i for i, nbrs in enumerate(self.neighbors) if not nbrs)

    @property
    def n_links(self) -> int:
        """Number of directed neighbor links."""
        return int(self.cardinalities.sum())

    def asymmetries(self) -> list[tuple[int, int]]:
        """Return pairs (i, j) where j neighbors i but i does not neighbor j."""
        sets = [set(nbrs) for nbrs in self.neighbors]
        return [(i, j) for i, nbrs in enumerate(sets) for j in sorted(nbrs) if i not in sets[j]]

    def is_symmetric(self) -> bool:
        """Whether j in neighbors(i) iff i in neighbors(j)."""
        return not self.asymmetries()

    def symmetrize(self) -> Adjacency:
        """Return the union of the relation and its transpose."""
        sets = [set(nbrs) for nbrs in self.neighbors]
        for i, j in self.asymmetries():
            sets[j].add(i)
        return Adjacency(
            neighbors=tuple(tuple(sorted(s)) for s in sets),
            ids=self.ids,
            criterion=self.criterion,
            tolerance=self.tolerance,
        )

    def subset(self, indices: Sequence[int]) -> Adjacency:
        """Restrict the relation to *indices*, renumbering regions in the given order."""
        position = {int(old): new for new, old in enumerate(indices)}
        if len(position) != len(indices):
            raise ValueError("subset indices must be unique")
        neighbors = tuple(
            tuple(sorted(position[j] for j in self.neighbors[old] if j in position))
            for old in position
        )
        ids = tuple(self.ids[old] for old in position) if self.ids else ()
        return Adjacency(
            neighbors=neighbors,
            ids=ids,
            criterion=self.criterion,
            tolerance=self.tolerance,
        )

    def to_dict(self) -> dict[Any, list[Any]]:
        """Map each region id (or index) to its neighbor ids (or indices)."""
        labels = self.ids or tuple(range(self.n))
        return {labels[i]: [labels[j] for j in nbrs] for i, nbrs in enumerate(self.neighbors)}

    def summary(self) -> dict[str, Any]:
        """Return basic descriptive statistics of the relation."""
        card = self.cardinalities
        n = self.n
        return {
            "n": n,
            "criterion": self.criterion,
            "n_links": self.n_links,
            "pct_nonzero": (100.0 * self.n_links / (n * n)) if n else 0.0,
            "mean_neighbors": float(card.mean()) if n else 0.0,
            "min_neighbors": int(card.min()) if n else 0,
            "max_neighbors": int(card.max()) if n else 0,
            "islands": list(self.islands),
        }


def _shares_edge(a: BaseGeometry, b: BaseGeometry, tolerance: float) -> bool:
    """Rook test: the shared boundary must have positive length.

    With a tolerance, a corner contact leaves at most 2 * tolerance of boundary
    inside the buffer, so only longer overlaps count as an edge.
    """
    if tolerance > 0:
        shared = a.boundary.intersection(b.buffer(tolerance))
        return bool(shared.length > 2 * tolerance)
    shared = a.boundary.intersection(b.boundary)
    return bool(shared.length > 0)


def build_contiguity(
    geometries: Sequence[BaseGeometry],
    *,
    criterion: Criterion = "queen",
    tolerance: float = 0.0,
    ids: Sequence[Any] | None = None,
) -> Adjacency:
    """
    Build a contiguity neighbor relation from polygon boundaries.

    Queen contiguity links two regions whose boundaries share at least one point;
    rook contiguity additionally requires a shared edge. Candidate pairs come from
    an STRtree query so the cost is close to linear in the number of regions.

    Args:
        geometries: Region polygons in analysis order
        criterion: "queen" or "rook"
        tolerance: Regions closer than this distance count as touching. With the
            default of 0.0 only exactly intersecting boundaries match.
        ids: Optional region identifiers aligned with *geometries*

    Returns:
        Symmetric Adjacency. Islands are kept with empty neighbor sets and logged.
    """
    if criterion not in ("queen", "rook"):
        raise ValueError(f"Unsupported contiguity criterion: {criterion!r}")
    if tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance}")

    geoms = list(geometries)
    if ids is not None and len(ids) != len(geoms):
        raise ValueError(f"Got {len(ids)} ids for {len(geoms)} geometries")
    for i, geom in enumerate(geoms):
        if geom is None or geom.is_empty:
            raise ValueError(f"Region {i} has an empty geometry")

    logger.info(
        f"Building {criterion} contiguity for {len(geoms)} regions (tolerance={tolerance})"
    )

    tree = STRtree(geoms)
    if tolerance > 0:
        left, right = tree.query(geoms, predicate="dwithin", distance=tolerance)
    else:
        left, right = tree.query(geoms, predicate="intersects")

    sets: list[set[int]] = [set() for _ in geoms]
    for i, j in zip(left.tolist(), right.tolist()):
        if i == j:
            continue
        if criterion == "rook" and not _shares_edge(geoms[i], geoms[j], tolerance):
            continue
        sets[i].add(j)

    adjacency = Adjacency(
        neighbors=tuple(tuple(sorted(s)) for s in sets),
        ids=tuple(ids) if ids is not None else (),
        criterion=criterion,
        tolerance=tolerance,
    )

    asymmetric = adjacency.asymmetries()
    if asymmetric:
        logger.warning(
            "Neighbor relation is asymmetric for %s pairs (first: %s); symmetrizing by union",
            len(asymmetric),
            asymmetric[0],
        )
        adjacency = adjacency.symmetrize()

    if adjacency.islands:
        labels = [adjacency.ids[i] if adjacency.ids else i for i in adjacency.islands]
        logger.warning(f"{len(labels)} regions have no neighbors: {labels}")

    logger.debug("Contiguity summary: %s", adjacency.summary())
    return adjacency


def contiguity_from_frame(
    region_frame: RegionFrame,
    *,
    criterion: Criterion = "queen",
    tolerance: float = 0.0,
) -> Adjacency:
    """Build contiguity for the regions of *region_frame*, labelled by its id column."""
    return build_contiguity(
        region_frame.geometries(),
        criterion=criterion,
        tolerance=tolerance,
        ids=region_frame.ids(),
    )
