"""Time-series chart engine -- geometry, Pillow renderer and pointer selection."""

from fxtrend.chart.geometry import (
    ChartGeometry,
    generate_ticks,
    nearest_index,
    nearest_point_index,
    value_bounds,
)
from fxtrend.chart.models import AxisTick, ChartStyle, ChartViewport
from fxtrend.chart.renderer import ChartRenderer, RasterSurface
from fxtrend.chart.selection import Pinned, SelectionController, Unpinned

__all__ = [
    "AxisTick",
    "ChartGeometry",
    "ChartRenderer",
    "ChartStyle",
    "ChartViewport",
    "Pinned",
    "RasterSurface",
    "SelectionController",
    "Unpinned",
    "generate_ticks",
    "nearest_index",
    "nearest_point_index",
    "value_bounds",
]
