"""Viewer session: wires the caches, the chart engine and the conversion panel.

The viewer is the topmost orchestration layer. It owns the session's cache
stores, the raster surface and the selection controller, and it is the only
place where fetch errors turn into status text. Superseded requests are
dropped here without touching visible output.

Inputs the UI glue forwards:
- ``convert`` / ``on_amount_input`` (debounced) / ``swap_currencies``
- ``render_trend`` for pair and range changes, ``refresh`` to force both
- ``on_pointer_down`` / ``on_pointer_move`` / ``on_resize`` with raw
  screen coordinates
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

import httpx

from fxtrend.api.client import RatesApi
from fxtrend.cache.rate_cache import RateCache
from fxtrend.cache.series_cache import SeriesCache
from fxtrend.chart.models import ChartStyle, ChartViewport
from fxtrend.chart.renderer import ChartRenderer, RasterSurface
from fxtrend.chart.selection import SelectionController
from fxtrend.config import AppSettings
from fxtrend.conversion import ConversionService
from fxtrend.exceptions import RequestSuperseded, SeriesFetchError
from fxtrend.formatting import format_amount
from fxtrend.logging import get_logger, pair_context
from fxtrend.models import (
    DisplayResult,
    RatesSnapshot,
    SeriesEntry,
    SeriesKey,
    SeriesPoint,
    TrendRange,
    TrendStatus,
)

logger = get_logger(__name__)

CURRENCIES_FAILED_TEXT = "Could not load currency list. Refresh and retry."
TREND_LOADING_TEXT = "Loading trend..."
TREND_NOT_APPLICABLE_TEXT = "Trend is not applicable for identical currencies."
TREND_NO_DATA_TEXT = "No data for this window."
TREND_FAILED_TEXT = "Could not load trend data. Try again."


@dataclass
class SessionCaches:
    """Cache stores scoped to one viewer session."""

    rates: dict[str, RatesSnapshot] = field(default_factory=dict)
    series: dict[SeriesKey, SeriesEntry] = field(default_factory=dict)


@dataclass
class ViewerState:
    """Current form selections."""

    from_code: str
    to_code: str
    amount: str
    trend_range: TrendRange
    currencies: list[tuple[str, str]] = field(default_factory=list)


def summarize(points: tuple[SeriesPoint, ...], base: str, quote: str, trend_range: TrendRange) -> str:
    """One-line change summary of a series, e.g. ``USD/KRW 1Y: 1,300 to 1,350 (+3.85%)``."""
    if not points:
        return TREND_NO_DATA_TEXT
    first, last = points[0].value, points[-1].value
    text = f"{base}/{quote} {trend_range.value}: {format_amount(first)} to {format_amount(last)}"
    if first:
        text += f" ({(last - first) / first * 100:+.2f}%)"
    return text


class CurrencyViewer:
    """Headless currency viewer session."""

    def __init__(
        self,
        api: RatesApi,
        settings: AppSettings,
        today: Callable[[], date] = date.today,
        style: ChartStyle | None = None,
        caches: SessionCaches | None = None,
    ) -> None:
        self._api = api
        self._settings = settings
        self._caches = caches or SessionCaches()
        self.rate_cache = RateCache(api, store=self._caches.rates)
        self.series_cache = SeriesCache(
            api,
            self.rate_cache,
            downsample_cap=settings.chart.downsample_cap,
            today=today,
            store=self._caches.series,
        )
        self.conversion = ConversionService(self.rate_cache)
        self.renderer = ChartRenderer(style)
        self.surface = RasterSurface()
        self.selection = SelectionController()

        self.state = ViewerState(
            from_code=settings.viewer.default_from,
            to_code=settings.viewer.default_to,
            amount=str(settings.viewer.default_amount),
            trend_range=TrendRange(settings.chart.default_range),
        )
        self.viewport = ChartViewport(
            width=settings.chart.width,
            height=settings.chart.height,
            pixel_ratio=settings.chart.pixel_ratio,
        )
        self.result = DisplayResult("-", "")
        self.trend_status = TrendStatus()
        self._entry: SeriesEntry | None = None
        self._debounce_task: asyncio.Task | None = None  # type: ignore[type-arg]
        # Bumped per request; a completion may only write output while its
        # generation is still the latest one.
        self._convert_generation = 0
        self._trend_generation = 0

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Load the currency directory, then run both views once."""
        if await self.load_currencies():
            await asyncio.gather(self.convert(), self.render_trend())

    async def close(self) -> None:
        """Cancel pending input handling and release the network client."""
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            try:
                await self._debounce_task
            except asyncio.CancelledError:
                pass
            self._debounce_task = None
        await self._api.close()

    async def load_currencies(self) -> bool:
        """Populate the selectable currencies, sorted by code."""
        try:
            directory = await self._api.fetch_currencies()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("currencies_fetch_failed", error=str(exc))
            self.result = DisplayResult("-", CURRENCIES_FAILED_TEXT, is_error=True)
            return False
        self.state.currencies = sorted((str(code), str(name)) for code, name in directory.items())
        codes = {code for code, _ in self.state.currencies}
        if self.state.from_code not in codes or self.state.to_code not in codes:
            logger.warning(
                "default_currency_missing",
                source=self.state.from_code,
                target=self.state.to_code,
            )
        logger.info("currencies_loaded", count=len(self.state.currencies))
        return True

    # ──────────────────────────────────────────────
    # Conversion panel
    # ──────────────────────────────────────────────

    async def convert(
        self,
        amount: str | int | float | Decimal | None = None,
        from_code: str | None = None,
        to_code: str | None = None,
        force_refresh: bool = False,
    ) -> DisplayResult:
        """Convert with the given (or current) inputs and update the panel."""
        if amount is not None:
            self.state.amount = str(amount)
        if from_code is not None:
            self.state.from_code = from_code
        if to_code is not None:
            self.state.to_code = to_code
        self._convert_generation += 1
        generation = self._convert_generation

        if self.state.from_code != self.state.to_code:
            self.result = DisplayResult("...", "Fetching the latest rate...")
        with pair_context(self.state.from_code, self.state.to_code):
            try:
                result = await self.conversion.convert(
                    self.state.amount,
                    self.state.from_code,
                    self.state.to_code,
                    force_refresh=force_refresh,
                )
            except RequestSuperseded:
                logger.debug("conversion_superseded")
                return self.result
            if generation != self._convert_generation:
                # A newer conversion (possibly served from cache) already wrote the panel.
                logger.debug("conversion_stale", generation=generation)
                return self.result
        self.result = result
        return result

    def on_amount_input(self, text: str) -> None:
        """Record a keystroke and convert once typing pauses."""
        self.state.amount = text
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(self._debounced_convert())

    async def _debounced_convert(self) -> None:
        await asyncio.sleep(self._settings.viewer.debounce_seconds)
        await self.convert()

    async def swap_currencies(self) -> None:
        """Swap source and target, then refresh both views."""
        self.state.from_code, self.state.to_code = self.state.to_code, self.state.from_code
        await asyncio.gather(self.convert(), self.render_trend())

    async def refresh(self) -> None:
        """Re-run both views, bypassing the caches."""
        await asyncio.gather(
            self.convert(force_refresh=True),
            self.render_trend(force_refresh=True),
        )

    # ──────────────────────────────────────────────
    # Trend chart
    # ──────────────────────────────────────────────

    async def render_trend(
        self,
        from_code: str | None = None,
        to_code: str | None = None,
        trend_range: TrendRange | str | None = None,
        force_refresh: bool = False,
    ) -> None:
        """Load the series for the current pair and range and repaint the chart."""
        if from_code is not None:
            self.state.from_code = from_code
        if to_code is not None:
            self.state.to_code = to_code
        if trend_range is not None:
            self.state.trend_range = TrendRange(trend_range)
        base, quote, selected_range = self.state.from_code, self.state.to_code, self.state.trend_range
        self._trend_generation += 1
        generation = self._trend_generation

        # Any pair or range change drops the previous dataset and selection.
        self._entry = None
        self.selection.bind(())

        if base == quote:
            self.trend_status = TrendStatus(TREND_NOT_APPLICABLE_TEXT)
            self.paint()
            return

        if force_refresh:
            self.series_cache.invalidate(base, quote, selected_range)
            self.rate_cache.invalidate(base)

        self.trend_status = TrendStatus(TREND_LOADING_TEXT)
        with pair_context(base, quote):
            try:
                entry = await self.series_cache.get_series(base, quote, selected_range)
            except RequestSuperseded:
                logger.debug("trend_superseded", range=selected_range.value)
                return
            except SeriesFetchError as exc:
                if generation != self._trend_generation:
                    logger.debug("trend_stale", range=selected_range.value, generation=generation)
                    return
                logger.warning("trend_failed", range=selected_range.value, error=str(exc))
                self.trend_status = TrendStatus(TREND_FAILED_TEXT, is_error=True)
                self.paint()
                return
            if generation != self._trend_generation:
                # A newer request (cache hit or identical pair) already owns the chart.
                logger.debug("trend_stale", range=selected_range.value, generation=generation)
                return

        self._entry = entry
        summary = summarize(entry.points, base, quote, selected_range)
        self.selection.bind(entry.points, summary=summary, pair=(base, quote))
        self.trend_status = TrendStatus(summary)
        self.paint()

    def paint(self) -> None:
        """Repaint the surface from the current dataset and selection."""
        entry = self._entry
        points = entry.points if entry is not None else ()
        window = (entry.window_start, entry.window_end) if entry is not None else None
        geometry = self.renderer.draw(
            self.surface,
            points,
            self.viewport,
            self.state.trend_range,
            selected_index=self.selection.selected_index,
            window=window,
        )
        self.selection.attach_geometry(geometry, self.viewport)

    @property
    def readout(self) -> str:
        """Tooltip / detail text for the current selection."""
        return self.selection.readout

    def tooltip_left(self, box_width: float) -> float | None:
        return self.selection.tooltip_left(box_width)

    # ──────────────────────────────────────────────
    # Pointer and resize events
    # ──────────────────────────────────────────────

    def on_pointer_down(self, screen_x: float, screen_y: float) -> str:
        if self.selection.pointer_down(screen_x, screen_y):
            self.paint()
        return self.readout

    def on_pointer_move(self, screen_x: float, screen_y: float) -> str:
        if self.selection.pointer_move(screen_x, screen_y):
            self.paint()
        return self.readout

    def on_resize(
        self,
        width: float,
        height: float,
        pixel_ratio: float | None = None,
        origin_x: float | None = None,
        origin_y: float | None = None,
    ) -> None:
        """Adopt a new surface size (and screen origin) and repaint."""
        changes: dict[str, float] = {"width": width, "height": height}
        if pixel_ratio is not None:
            changes["pixel_ratio"] = pixel_ratio
        if origin_x is not None:
            changes["origin_x"] = origin_x
        if origin_y is not None:
            changes["origin_y"] = origin_y
        self.viewport = replace(self.viewport, **changes)
        self.paint()
