"""Pure chart geometry: value bounds, affine transforms, ticks, nearest point.

Nothing here holds state beyond the frozen ``ChartGeometry`` built for one
(points, viewport, range) triple. Times are handled as POSIX seconds
internally and exposed as aware UTC datetimes.
"""

import math
from bisect import bisect_left
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from fxtrend.chart.models import AxisTick, ChartViewport
from fxtrend.models import SeriesPoint, TrendRange

#: Relative padding applied to a flat series so the y scale is not degenerate.
FLAT_SERIES_PADDING = 0.005

#: (tick count, unit suffix) of each fixed preset.
_PRESET_TICKS: dict[TrendRange, tuple[int, str]] = {
    TrendRange.ONE_MONTH: (4, "w"),
    TrendRange.SIX_MONTHS: (6, "m"),
    TrendRange.ONE_YEAR: (12, "m"),
    TrendRange.FIVE_YEARS: (5, "y"),
    TrendRange.TEN_YEARS: (10, "y"),
}

_YEARS_PER_ALL_TICK = 5
_DAYS_PER_YEAR = 365.25


def value_bounds(points: Sequence[SeriesPoint]) -> tuple[float, float]:
    """Return ``(min, max)`` of the values, widened by 0.5% for a flat series."""
    if not points:
        raise ValueError("value_bounds() needs at least one point")
    low = min(p.value for p in points)
    high = max(p.value for p in points)
    if low == high:
        pad = abs(low) * FLAT_SERIES_PADDING or 0.5
        return low - pad, high + pad
    return low, high


def nearest_index(times: Sequence[float], t: float) -> int:
    """Index of the ascending ``times`` entry closest to ``t``.

    Bisects for the insertion point and compares the two neighbours; an
    exact tie goes to the earlier index.
    """
    if not times:
        raise ValueError("nearest_index() needs at least one time")
    i = bisect_left(times, t)
    if i == 0:
        return 0
    if i == len(times):
        return len(times) - 1
    before = i - 1
    if t - times[before] <= times[i] - t:
        return before
    return i


def nearest_point_index(points: Sequence[SeriesPoint], t: datetime) -> int:
    """Index of the point whose time is closest to ``t`` (ties to the earlier)."""
    if not points:
        raise ValueError("nearest_point_index() needs at least one point")
    ts = t.timestamp()
    i = bisect_left(points, ts, key=lambda p: p.time.timestamp())
    if i == 0:
        return 0
    if i == len(points):
        return len(points) - 1
    if ts - points[i - 1].time.timestamp() <= points[i].time.timestamp() - ts:
        return i - 1
    return i


def _pin_endpoints(
    ticks: list[AxisTick],
    first_label: str,
    final_label: str,
    step: float | None = None,
) -> list[AxisTick]:
    """Put ``first_label`` at fraction 0 and ``final_label`` at fraction 1.

    The tick nearest the end is moved onto fraction 1 when it lies within
    half a ``step`` of it. A farther tick keeps its gridline and the final
    label is appended as its own tick.
    """
    if not ticks:
        return [AxisTick(0.0, first_label), AxisTick(1.0, final_label)]
    first = min(range(len(ticks)), key=lambda i: ticks[i].fraction)
    ticks[first] = AxisTick(0.0, first_label)
    candidates = [i for i in range(len(ticks)) if i != first]
    if not candidates:
        if final_label != first_label:
            ticks.append(AxisTick(1.0, final_label))
        return ticks
    last = min(candidates, key=lambda i: abs(1.0 - ticks[i].fraction))
    if step is not None and 1.0 - ticks[last].fraction > step / 2:
        ticks.append(AxisTick(1.0, final_label))
    else:
        ticks[last] = AxisTick(1.0, final_label)
    return sorted(ticks, key=lambda tick: tick.fraction)


def generate_ticks(
    trend_range: TrendRange, window_start: date, window_end: date
) -> list[AxisTick]:
    """Return the time-axis ticks of a range, labelled from the window start.

    Fixed presets use a fixed count of evenly spaced ticks (weeks for one
    month, months up to a year, years beyond). ``ALL`` places one tick every
    five years of the window. In both cases a ``"0<unit>"`` tick sits at the
    start and the final label sits exactly at the end.

    For ``ALL`` the final label is ``round(years)``. The last five-year tick
    becomes that label at fraction 1 only when it lies within half a step of
    the end. Otherwise it keeps its gridline and label, and the final label
    is added as an extra tick.
    """
    if trend_range in _PRESET_TICKS:
        count, unit = _PRESET_TICKS[trend_range]
        ticks = [AxisTick(i / count, f"{i}{unit}") for i in range(count + 1)]
        return _pin_endpoints(ticks, f"0{unit}", f"{count}{unit}")

    years = max(0.0, (window_end - window_start).days / _DAYS_PER_YEAR)
    final_label = f"{round(years)}y"
    if years == 0:
        return [AxisTick(0.0, "0y")]
    count = math.floor(years / _YEARS_PER_ALL_TICK)
    step = _YEARS_PER_ALL_TICK / years
    ticks = [
        AxisTick(min(1.0, k * step), f"{k * _YEARS_PER_ALL_TICK}y")
        for k in range(count + 1)
    ]
    return _pin_endpoints(ticks, "0y", final_label, step=step)


@dataclass(frozen=True)
class ChartGeometry:
    """Transforms between series space and the viewport's plot rectangle."""

    viewport: ChartViewport
    times: tuple[float, ...]
    min_value: float
    max_value: float
    ticks: tuple[AxisTick, ...]

    @classmethod
    def build(
        cls,
        points: Sequence[SeriesPoint],
        viewport: ChartViewport,
        trend_range: TrendRange,
        window: tuple[date, date] | None = None,
    ) -> "ChartGeometry":
        """Compute bounds, transforms and ticks for a non-empty series.

        ``window`` labels the ticks; it defaults to the first and last point dates.
        """
        if not points:
            raise ValueError("ChartGeometry.build() needs at least one point")
        low, high = value_bounds(points)
        if window is None:
            window = (points[0].time.date(), points[-1].time.date())
        return cls(
            viewport=viewport,
            times=tuple(p.time.timestamp() for p in points),
            min_value=low,
            max_value=high,
            ticks=tuple(generate_ticks(trend_range, *window)),
        )

    @property
    def start(self) -> float:
        return self.times[0]

    @property
    def end(self) -> float:
        return self.times[-1]

    def x_for_time(self, t: datetime) -> float:
        return self.x_for_timestamp(t.timestamp())

    def x_for_timestamp(self, ts: float) -> float:
        vp = self.viewport
        span = self.end - self.start
        if span <= 0:
            return vp.plot_left + vp.plot_width / 2
        return vp.plot_left + (ts - self.start) / span * vp.plot_width

    def x_for_index(self, index: int) -> float:
        return self.x_for_timestamp(self.times[index])

    def x_for_fraction(self, fraction: float) -> float:
        return self.viewport.plot_left + fraction * self.viewport.plot_width

    def y_for_value(self, value: float) -> float:
        vp = self.viewport
        scale = (value - self.min_value) / (self.max_value - self.min_value)
        return vp.plot_bottom - scale * vp.plot_height

    def time_from_x(self, x: float) -> datetime:
        """Invert the x transform, clamping ``x`` to the plot first."""
        vp = self.viewport
        clamped = min(max(x, vp.plot_left), vp.plot_right)
        if vp.plot_width <= 0:
            ts = self.start
        else:
            ts = self.start + (clamped - vp.plot_left) / vp.plot_width * (self.end - self.start)
        return datetime.fromtimestamp(ts, tz=timezone.utc)

    def nearest_index(self, t: datetime) -> int:
        return nearest_index(self.times, t.timestamp())

    def index_at_x(self, x: float) -> int:
        """Index of the point nearest to local x (clamped to the plot)."""
        return self.nearest_index(self.time_from_x(x))
