"""Rendering configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RenderConfig(BaseModel):
    """
    Options for map rendering.

    The mode is chosen per call; there is no process-wide plotting mode.

    Attributes:
        mode: "static" (matplotlib Figure) or "interactive" (folium Map)
        cmap: Matplotlib colormap name for numeric columns
        title: Optional title
        legend: Whether to draw a colorbar / legend
        figsize: Figure size in inches (static mode)
        edgecolor: Polygon outline color
        linewidth: Polygon outline width
        missing_color: Fill for regions without a value
        tiles: Folium base tiles (interactive mode)
        zoom_start: Initial zoom (interactive mode); None fits the map to the regions
        fill_opacity: Polygon fill opacity (interactive mode)
    """

    mode: Literal["static", "interactive"] = "static"
    cmap: str = "YlOrRd"
    title: str | None = None
    legend: bool = True
    figsize: tuple[float, float] = (8.0, 8.0)
    edgecolor: str = "#444444"
    linewidth: float = Field(default=0.5, ge=0)
    missing_color: str = "#ffffff"
    tiles: str = "OpenStreetMap"
    zoom_start: int | None = Field(default=None, ge=0)
    fill_opacity: float = Field(default=0.7, ge=0, le=1)
