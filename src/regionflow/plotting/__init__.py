"""Static and interactive maps of region attributes and autocorrelation results."""

from regionflow.plotting.config import RenderConfig
from regionflow.plotting.maps import (
    plot_choropleth,
    plot_lisa_clusters,
    plot_permutation_distribution,
    save_figure,
)

__all__ = [
    "RenderConfig",
    "plot_choropleth",
    "plot_lisa_clusters",
    "plot_permutation_distribution",
    "save_figure",
]
