"""Historical series cache with downsampling and live-edge stitching.

Entries are keyed by (base, quote, range, window start, window end), where the
window is resolved against "today" at request time. A new day therefore maps
to a new key; ``invalidate`` purges every window of a (base, quote, range).

Build pipeline on a cache miss:
1. Fetch the daily series for the window and keep numeric values only.
2. Downsample to the configured cap, always keeping the last observation.
3. If the feed's last date is before today, append a synthetic point from
   the live rate (RateCache), tagged with the live observation time.
"""

import math
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, time, timezone
from typing import Any

import httpx
from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from fxtrend.api.client import RatesApi
from fxtrend.api.payloads import HistoryPayload
from fxtrend.cache.gate import CancellationToken, RequestGate
from fxtrend.cache.rate_cache import RateCache
from fxtrend.exceptions import FxTrendError, SeriesFetchError
from fxtrend.logging import get_logger
from fxtrend.models import SeriesEntry, SeriesKey, SeriesPoint, TrendRange

logger = get_logger(__name__)

#: First date of the historical feed; the "ALL" range starts here.
EPOCH_FLOOR = date(1999, 1, 4)

DEFAULT_DOWNSAMPLE_CAP = 360

_RANGE_OFFSETS: dict[TrendRange, relativedelta] = {
    TrendRange.ONE_MONTH: relativedelta(months=1),
    TrendRange.SIX_MONTHS: relativedelta(months=6),
    TrendRange.ONE_YEAR: relativedelta(years=1),
    TrendRange.FIVE_YEARS: relativedelta(years=5),
    TrendRange.TEN_YEARS: relativedelta(years=10),
}


def resolve_window(trend_range: TrendRange, today: date) -> tuple[date, date]:
    """Return the ``(start, end)`` dates of a preset range ending today.

    Calendar subtraction clamps month ends (Mar 31 minus 1 month is Feb 28/29).
    """
    if trend_range is TrendRange.ALL:
        return EPOCH_FLOOR, today
    return today - _RANGE_OFFSETS[trend_range], today


def day_start(day: date) -> datetime:
    """Midnight UTC of ``day``; the timestamp of a daily sample."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _numeric(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_history(rates: Mapping[str, Mapping[str, Any]], quote: str) -> list[SeriesPoint]:
    """Build ascending points from ``{date: {quote: value}}``.

    Dates that do not parse, or whose value for ``quote`` is missing or
    non-numeric, are skipped.
    """
    points: list[SeriesPoint] = []
    for label, values in rates.items():
        try:
            day = date.fromisoformat(label)
        except ValueError:
            continue
        if not isinstance(values, Mapping):
            continue
        value = _numeric(values.get(quote))
        if value is None:
            continue
        points.append(SeriesPoint(time=day_start(day), value=value, date_label=day.isoformat()))
    points.sort(key=lambda p: p.time)
    return points


def downsample(points: list[SeriesPoint], cap: int) -> list[SeriesPoint]:
    """Stride ``points`` down to about ``cap`` samples.

    Uses a stride of ``ceil(len / cap)`` from the first point and appends the
    last point when the stride skipped it, so the result holds at most
    ``cap + 1`` points and always ends with the most recent observation.
    """
    if cap <= 0 or len(points) <= cap:
        return list(points)
    step = math.ceil(len(points) / cap)
    sampled = points[::step]
    if sampled[-1] is not points[-1]:
        sampled.append(points[-1])
    return sampled


class SeriesCache:
    """Memoizes downsampled series entries by composite key."""

    def __init__(
        self,
        api: RatesApi,
        rate_cache: RateCache,
        downsample_cap: int = DEFAULT_DOWNSAMPLE_CAP,
        today: Callable[[], date] = date.today,
        store: dict[SeriesKey, SeriesEntry] | None = None,
    ) -> None:
        self._api = api
        self._rate_cache = rate_cache
        self._cap = downsample_cap
        self._today = today
        self._entries: dict[SeriesKey, SeriesEntry] = store if store is not None else {}
        self._gate: RequestGate[SeriesEntry] = RequestGate("series")

    def key_for(self, base: str, quote: str, trend_range: TrendRange) -> SeriesKey:
        """Resolve today's window for a range and return its cache key."""
        start, end = resolve_window(trend_range, self._today())
        return SeriesKey(base, quote, trend_range, start, end)

    def cached_keys(self) -> Iterable[SeriesKey]:
        return tuple(self._entries)

    async def get_series(
        self, base: str, quote: str, trend_range: TrendRange
    ) -> SeriesEntry:
        """Return the series for a pair and range, fetching on a cache miss.

        Raises:
            SeriesFetchError: the historical feed failed or returned a bad payload.
            RequestSuperseded: a newer series request replaced this one.
        """
        key = self.key_for(base, quote, trend_range)
        cached = self._entries.get(key)
        if cached is not None:
            logger.debug("series_cache_hit", base=base, quote=quote, range=trend_range.value)
            return cached

        return await self._gate.run(key, lambda token: self._build(key, token))

    def invalidate(self, base: str, quote: str, trend_range: TrendRange) -> None:
        """Drop every cached window of (base, quote, range). No-op when none exist."""
        stale = [key for key in self._entries if key.matches(base, quote, trend_range)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(
                "series_invalidated",
                base=base,
                quote=quote,
                range=trend_range.value,
                entries=len(stale),
            )

    async def _build(self, key: SeriesKey, token: CancellationToken) -> SeriesEntry:
        logger.info(
            "series_fetch_started",
            base=key.base,
            quote=key.quote,
            start=key.window_start.isoformat(),
            end=key.window_end.isoformat(),
        )
        try:
            raw = await self._api.fetch_history(
                key.base, key.quote, key.window_start, key.window_end
            )
            payload = HistoryPayload.model_validate(raw)
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            token.raise_if_cancelled()
            logger.warning("series_fetch_failed", base=key.base, quote=key.quote, error=str(exc))
            raise SeriesFetchError(f"Failed to fetch {key.base}/{key.quote} history") from exc

        token.raise_if_cancelled()
        historical = parse_history(payload.rates, key.quote)
        points = downsample(historical, self._cap)
        last_date = historical[-1].date_label if historical else None

        if points:
            live_point = await self._live_edge(key, last_date)
            token.raise_if_cancelled()
            if live_point is not None:
                points.append(live_point)

        entry = SeriesEntry(
            points=tuple(points),
            window_start=key.window_start,
            window_end=key.window_end,
            last_point_date=last_date,
        )
        self._entries[key] = entry
        logger.info(
            "series_fetched",
            base=key.base,
            quote=key.quote,
            raw_points=len(historical),
            points=len(entry.points),
        )
        return entry

    async def _live_edge(self, key: SeriesKey, last_date: str | None) -> SeriesPoint | None:
        """Return a synthetic point for today when the feed lags, else None.

        A failed live lookup only costs the trailing point.
        """
        today = key.window_end
        if last_date is None or last_date >= today.isoformat():
            return None
        try:
            rate = await self._rate_cache.get_rate_for(key.base, key.quote)
        except FxTrendError as exc:
            # TODO: decide with product whether a failed live lookup should surface in the status line
            logger.debug("live_edge_skipped", base=key.base, quote=key.quote, error=repr(exc))
            return None
        snapshot = self._rate_cache.peek(key.base)
        observed_at = snapshot.observed_at if snapshot is not None else None
        return SeriesPoint(
            time=day_start(today),
            value=float(rate),
            date_label=today.isoformat(),
            live_observed_at=observed_at or datetime.now(timezone.utc),
        )
