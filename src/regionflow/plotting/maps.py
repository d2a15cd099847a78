"""Choropleth, LISA cluster and permutation distribution plots."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import folium
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from regionflow.core.autocorrelation import GlobalMoranResult
from regionflow.core.lisa import CLUSTER_COLORS, ClusterLabel
from regionflow.core.loaders import to_geodataframe
from regionflow.core.region_frame import RegionFrame
from regionflow.core.utils import get_logger
from regionflow.plotting.config import RenderConfig

logger = get_logger(__name__)


def _axes(config: RenderConfig) -> tuple[Figure, Any]:
    fig = Figure(figsize=config.figsize)
    ax = fig.subplots()
    ax.set_axis_off()
    if config.title:
        ax.set_title(config.title)
    return fig, ax


def _explore_kwargs(region_frame: RegionFrame, column: str, config: RenderConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "column": column,
        "tooltip": [region_frame.schema.id_col, column],
        "tiles": config.tiles,
        "legend": config.legend,
        "style_kwds": {
            "color": config.edgecolor,
            "weight": config.linewidth,
            "fillOpacity": config.fill_opacity,
        },
    }
    if config.zoom_start is not None:
        kwargs["zoom_start"] = config.zoom_start
    return kwargs


def plot_choropleth(
    region_frame: RegionFrame,
    column: str,
    config: RenderConfig | None = None,
) -> Figure | folium.Map:
    """
    Draw a choropleth of a numeric column.

    Args:
        region_frame: Regions to draw
        column: Numeric column mapped to fill color
        config: Rendering options; ``config.mode`` selects the backend

    Returns:
        matplotlib Figure (static) or folium Map (interactive)
    """
    config = config or RenderConfig()
    gdf = to_geodataframe(region_frame, [column])
    gdf[column] = gdf[column].astype(float)
    if gdf[column].isna().all():
        raise ValueError(f"Column '{column}' has no values to plot")

    missing_kwds = {"color": config.missing_color, "label": "missing"}
    if config.mode == "interactive":
        kwargs = _explore_kwargs(region_frame, column, config)
        kwargs["legend_kwds"] = {"caption": config.title or column}
        return gdf.explore(cmap=config.cmap, missing_kwds=missing_kwds, **kwargs)

    fig, ax = _axes(config)
    gdf.plot(
        column=column,
        cmap=config.cmap,
        legend=config.legend,
        legend_kwds={"label": column, "shrink": 0.6},
        missing_kwds=missing_kwds,
        edgecolor=config.edgecolor,
        linewidth=config.linewidth,
        ax=ax,
    )
    return fig


def plot_lisa_clusters(
    region_frame: RegionFrame,
    cluster_col: str,
    config: RenderConfig | None = None,
) -> Figure | folium.Map:
    """
    Draw LISA cluster labels with the conventional red/blue palette.

    Args:
        region_frame: Regions carrying a cluster label column (see ``LocalMoranStep``)
        cluster_col: Column with cluster labels
        config: Rendering options

    Returns:
        matplotlib Figure (static) or folium Map (interactive)
    """
    config = config or RenderConfig()
    gdf = to_geodataframe(region_frame, [cluster_col])
    gdf[cluster_col] = gdf[cluster_col].fillna(ClusterLabel.UNDEFINED.value)

    palette = {label.value: color for label, color in CLUSTER_COLORS.items()}
    unknown = sorted(set(gdf[cluster_col]) - set(palette))
    if unknown:
        raise ValueError(f"Unknown cluster label: {unknown[0]!r}")
    present = [label for label in ClusterLabel if label.value in set(gdf[cluster_col])]

    if config.mode == "interactive":
        kwargs = _explore_kwargs(region_frame, cluster_col, config)
        kwargs["legend_kwds"] = {"caption": config.title or "LISA clusters"}
        return gdf.explore(
            categorical=True,
            categories=[label.value for label in present],
            cmap=[CLUSTER_COLORS[label] for label in present],
            **kwargs,
        )

    fig, ax = _axes(config)
    gdf.plot(
        color=gdf[cluster_col].map(palette),
        edgecolor=config.edgecolor,
        linewidth=config.linewidth,
        ax=ax,
    )
    if config.legend:
        ax.legend(
            handles=[
                Patch(facecolor=CLUSTER_COLORS[label], edgecolor=config.edgecolor, label=label.value)
                for label in present
            ],
            title="LISA cluster",
            loc="lower left",
            frameon=False,
        )
    return fig


def plot_permutation_distribution(
    result: GlobalMoranResult,
    config: RenderConfig | None = None,
    *,
    bins: int = 30,
) -> Figure:
    """Histogram of permuted Moran's I values with the observed I marked.

    Always static; ``config.mode`` is ignored.
    """
    if result.p_sim is None or result.sim.size == 0:
        raise ValueError("Result has no permutation distribution (permutations=0)")
    config = config or RenderConfig()

    fig = Figure(figsize=config.figsize)
    ax = fig.subplots()
    ax.hist(result.sim, bins=bins, color="#bdbdbd", edgecolor="white")
    ax.axvline(result.I, color="#d7191c", linewidth=2, label=f"I = {result.I:.3f}")
    ax.axvline(result.EI, color="#555555", linestyle="--", label=f"E[I] = {result.EI:.3f}")
    ax.set_xlabel("Moran's I")
    ax.set_ylabel("Permutations")
    ax.set_title(config.title or f"Reference distribution (p_sim = {result.p_sim:.4f})")
    if config.legend:
        ax.legend(frameon=False)
    return fig


def save_figure(figure: Figure | folium.Map, path: str | Path) -> Path:
    """Write a Figure (PNG/SVG/PDF) or folium Map (HTML) to *path*."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(figure, folium.Map):
        figure.save(str(path))
    else:
        figure.savefig(path, bbox_inches="tight")
    logger.info(f"Saved figure to {path}")
    return path
