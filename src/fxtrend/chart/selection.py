"""Pointer-driven sample selection for the trend chart.

Two states:

- ``Unpinned``: no user selection; the highlighted sample is the last point.
- ``Pinned(index)``: the user pressed (or is dragging) on the chart.

Transitions:

- pointer-down on the chart -> ``Pinned(nearest)``
- pointer-move while pinned -> ``Pinned(nearest)`` (drag to scrub)
- pointer-down off the chart while pinned -> ``Unpinned``
- ``bind`` (new pair, range or dataset) -> ``Unpinned``

A series with no points never enters ``Pinned``.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from fxtrend.chart.geometry import ChartGeometry
from fxtrend.chart.models import ChartViewport
from fxtrend.formatting import format_amount, format_observed_at
from fxtrend.logging import get_logger
from fxtrend.models import SeriesPoint

logger = get_logger(__name__)


@dataclass(frozen=True)
class Unpinned:
    """Default state: follow the latest sample."""


@dataclass(frozen=True)
class Pinned:
    """User-held selection of one sample."""

    index: int


SelectionState = Unpinned | Pinned


class SelectionController:
    """Owns the selection state of the single live chart."""

    def __init__(self) -> None:
        self._state: SelectionState = Unpinned()
        self._points: tuple[SeriesPoint, ...] = ()
        self._geometry: ChartGeometry | None = None
        self._viewport: ChartViewport | None = None
        self._summary = ""
        self._pair = ("", "")

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def pinned(self) -> bool:
        return isinstance(self._state, Pinned)

    @property
    def selected_index(self) -> int | None:
        if isinstance(self._state, Pinned):
            return self._state.index
        return len(self._points) - 1 if self._points else None

    @property
    def selected_point(self) -> SeriesPoint | None:
        index = self.selected_index
        return self._points[index] if index is not None else None

    @property
    def summary(self) -> str:
        return self._summary

    def bind(
        self,
        points: Sequence[SeriesPoint],
        summary: str = "",
        pair: tuple[str, str] = ("", ""),
    ) -> None:
        """Attach a new dataset and reset to ``Unpinned``."""
        self._points = tuple(points)
        self._summary = summary
        self._pair = pair
        self._geometry = None
        self._state = Unpinned()

    def attach_geometry(self, geometry: ChartGeometry | None, viewport: ChartViewport) -> None:
        """Record the transforms of the latest paint (None when nothing is plotted)."""
        self._geometry = geometry
        self._viewport = viewport

    def pointer_down(self, screen_x: float, screen_y: float) -> bool:
        """Handle a press; return True when the chart needs a repaint."""
        viewport = self._viewport
        if viewport is not None and viewport.contains(screen_x, screen_y):
            index = self._index_at(screen_x, screen_y)
            if index is None:
                return False
            self._state = Pinned(index)
            logger.debug("selection_pinned", index=index)
            return True
        if self.pinned:
            self._state = Unpinned()
            logger.debug("selection_unpinned")
            return True
        return False

    def pointer_move(self, screen_x: float, screen_y: float) -> bool:
        """Scrub while pinned; return True when the selection changed."""
        if not self.pinned:
            return False
        index = self._index_at(screen_x, screen_y)
        if index is None or index == self.selected_index:
            return False
        self._state = Pinned(index)
        return True

    def tooltip_left(self, box_width: float) -> float | None:
        """Left edge of a tooltip centred on the selection, kept inside the chart."""
        index = self.selected_index
        if index is None or self._geometry is None:
            return None
        chart_width = self._geometry.viewport.width
        left = self._geometry.x_for_index(index) - box_width / 2
        return min(max(0.0, left), max(0.0, chart_width - box_width))

    @property
    def readout(self) -> str:
        """Detail of the pinned sample, or the summary text when unpinned."""
        if not self.pinned:
            return self._summary
        point = self.selected_point
        if point is None:
            return self._summary
        base, quote = self._pair
        text = f"{point.date_label}: 1 {base} = {format_amount(point.value)} {quote}"
        if point.live_observed_at is not None:
            text += f" (live, {format_observed_at(point.live_observed_at)})"
        return text

    def _index_at(self, screen_x: float, screen_y: float) -> int | None:
        if self._geometry is None or self._viewport is None or not self._points:
            return None
        x, _ = self._viewport.to_local(screen_x, screen_y)
        return self._geometry.index_at_x(x)
