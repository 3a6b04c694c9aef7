"""Tests for SeriesCache: windows, parsing, downsampling, stitching, invalidation."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from fxtrend.cache.rate_cache import RateCache
from fxtrend.cache.series_cache import (
    EPOCH_FLOOR,
    SeriesCache,
    day_start,
    downsample,
    parse_history,
    resolve_window,
)
from fxtrend.exceptions import RequestSuperseded, SeriesFetchError
from fxtrend.models import SeriesPoint, TrendRange


def make_points(count: int, start: date = date(2020, 1, 1)) -> list[SeriesPoint]:
    return [
        SeriesPoint(
            time=day_start(start + timedelta(days=i)),
            value=float(i),
            date_label=(start + timedelta(days=i)).isoformat(),
        )
        for i in range(count)
    ]


@pytest.fixture
def series_cache(mock_api: AsyncMock, today: date) -> SeriesCache:
    return SeriesCache(mock_api, RateCache(mock_api), today=lambda: today)


class TestResolveWindow:
    @pytest.mark.parametrize(
        ("trend_range", "start"),
        [
            (TrendRange.ONE_MONTH, date(2026, 9, 19)),
            (TrendRange.SIX_MONTHS, date(2026, 4, 19)),
            (TrendRange.ONE_YEAR, date(2025, 10, 19)),
            (TrendRange.FIVE_YEARS, date(2021, 10, 19)),
            (TrendRange.TEN_YEARS, date(2016, 10, 19)),
            (TrendRange.ALL, EPOCH_FLOOR),
        ],
    )
    def test_presets(self, trend_range: TrendRange, start: date, today: date) -> None:
        assert resolve_window(trend_range, today) == (start, today)

    def test_month_end_clamps(self) -> None:
        start, _ = resolve_window(TrendRange.ONE_MONTH, date(2024, 3, 31))
        assert start == date(2024, 2, 29)


class TestParseHistory:
    def test_sorted_and_filtered(self) -> None:
        rates = {
            "2026-10-16": {"KRW": 1348.25},
            "2026-10-14": {"KRW": 1340},
            "2026-10-15": {"KRW": None},
            "2026-10-13": {"KRW": "n/a"},
            "2026-10-12": {"EUR": 0.9},
            "2026-10-11": {"KRW": True},
            "2026-10-10": {"KRW": float("nan")},
            "not-a-date": {"KRW": 1},
        }
        points = parse_history(rates, "KRW")

        assert [p.date_label for p in points] == ["2026-10-14", "2026-10-16"]
        assert [p.value for p in points] == [1340.0, 1348.25]
        assert points[0].time == datetime(2026, 10, 14, tzinfo=timezone.utc)
        assert all(p.live_observed_at is None for p in points)


class TestDownsample:
    def test_short_series_untouched(self) -> None:
        points = make_points(10)
        assert downsample(points, 360) == points

    @pytest.mark.parametrize("count", [361, 500, 719, 720, 721, 3650, 7000])
    def test_bounded_and_keeps_last(self, count: int) -> None:
        points = make_points(count)
        sampled = downsample(points, 360)

        assert len(sampled) <= 361
        assert sampled[0] is points[0]
        assert sampled[-1] is points[-1]
        times = [p.time for p in sampled]
        assert times == sorted(times)

    def test_stride(self) -> None:
        points = make_points(1000)
        sampled = downsample(points, 360)
        # ceil(1000 / 360) = 3 -> indices 0, 3, ..., 999
        assert [p.value for p in sampled[:3]] == [0.0, 3.0, 6.0]
        assert sampled[-1].value == 999.0


class TestGetSeries:
    @pytest.mark.asyncio
    async def test_builds_entry_with_live_edge(self, series_cache: SeriesCache, mock_api: AsyncMock) -> None:
        entry = await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)

        assert entry.window_start == date(2026, 9, 19)
        assert entry.window_end == date(2026, 10, 19)
        assert entry.last_point_date == "2026-10-16"
        assert [p.date_label for p in entry.points] == [
            "2026-10-14",
            "2026-10-15",
            "2026-10-16",
            "2026-10-19",
        ]
        live = entry.points[-1]
        assert live.value == 1350.0
        assert live.live_observed_at == datetime(2026, 10, 19, 0, 2, 31, tzinfo=timezone.utc)
        mock_api.fetch_history.assert_awaited_once_with(
            "USD", "KRW", date(2026, 9, 19), date(2026, 10, 19)
        )

    @pytest.mark.asyncio
    async def test_no_stitch_when_feed_is_current(
        self, series_cache: SeriesCache, mock_api: AsyncMock, make_history
    ) -> None:
        mock_api.fetch_history = AsyncMock(
            return_value=make_history("KRW", {"2026-10-18": 1349.0, "2026-10-19": 1351.0})
        )
        entry = await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)

        assert [p.date_label for p in entry.points] == ["2026-10-18", "2026-10-19"]
        assert not any(p.is_live for p in entry.points)
        mock_api.fetch_latest.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_live_failure_is_tolerated(
        self, series_cache: SeriesCache, mock_api: AsyncMock
    ) -> None:
        mock_api.fetch_latest = AsyncMock(side_effect=httpx.ConnectError("down"))
        entry = await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)

        assert len(entry.points) == 3
        assert entry.points[-1].date_label == "2026-10-16"

    @pytest.mark.asyncio
    async def test_missing_live_quote_is_tolerated(
        self, mock_api: AsyncMock, make_latest, today: date
    ) -> None:
        mock_api.fetch_latest = AsyncMock(side_effect=lambda base: make_latest(base, {"EUR": 0.9}))
        cache = SeriesCache(mock_api, RateCache(mock_api), today=lambda: today)

        entry = await cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        assert len(entry.points) == 3

    @pytest.mark.asyncio
    async def test_empty_series_is_valid(
        self, series_cache: SeriesCache, mock_api: AsyncMock
    ) -> None:
        mock_api.fetch_history = AsyncMock(return_value={"rates": {}})
        entry = await series_cache.get_series("USD", "KRW", TrendRange.ONE_YEAR)

        assert entry.is_empty
        assert entry.last_point_date is None
        mock_api.fetch_latest.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_hit(self, series_cache: SeriesCache, mock_api: AsyncMock) -> None:
        first = await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        second = await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)

        assert second is first
        assert mock_api.fetch_history.await_count == 1

    @pytest.mark.asyncio
    async def test_ranges_are_cached_separately(
        self, series_cache: SeriesCache, mock_api: AsyncMock
    ) -> None:
        await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        await series_cache.get_series("USD", "KRW", TrendRange.ONE_YEAR)
        assert mock_api.fetch_history.await_count == 2

    @pytest.mark.asyncio
    async def test_fetch_failure(self, series_cache: SeriesCache, mock_api: AsyncMock) -> None:
        request = httpx.Request("GET", "https://example.test")
        mock_api.fetch_history = AsyncMock(
            side_effect=httpx.HTTPStatusError(
                "boom", request=request, response=httpx.Response(500, request=request)
            )
        )
        with pytest.raises(SeriesFetchError):
            await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        assert not series_cache.cached_keys()

    @pytest.mark.asyncio
    async def test_malformed_payload(self, series_cache: SeriesCache, mock_api: AsyncMock) -> None:
        mock_api.fetch_history = AsyncMock(return_value={"rates": ["not", "a", "mapping"]})
        with pytest.raises(SeriesFetchError):
            await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)

    @pytest.mark.asyncio
    async def test_long_history_is_downsampled(
        self, mock_api: AsyncMock, make_history, today: date
    ) -> None:
        start = today - timedelta(days=3000)
        values = {(start + timedelta(days=i)).isoformat(): 1000.0 + i for i in range(2999)}
        mock_api.fetch_history = AsyncMock(return_value=make_history("KRW", values))
        cache = SeriesCache(mock_api, RateCache(mock_api), downsample_cap=360, today=lambda: today)

        entry = await cache.get_series("USD", "KRW", TrendRange.TEN_YEARS)
        historical = [p for p in entry.points if not p.is_live]

        assert len(historical) <= 361
        assert len(entry.points) <= 360 + 2
        assert historical[-1].date_label == (today - timedelta(days=2)).isoformat()
        assert entry.points[-1].is_live

    @pytest.mark.asyncio
    async def test_newer_request_supersedes(self, mock_api: AsyncMock, make_history, today: date) -> None:
        release = asyncio.Event()

        async def fetch_history(base, quote, start, end):
            if start == date(2026, 9, 19):
                await release.wait()
            return make_history(quote, {"2026-10-19": 1351.0})

        mock_api.fetch_history = AsyncMock(side_effect=fetch_history)
        cache = SeriesCache(mock_api, RateCache(mock_api), today=lambda: today)

        first = asyncio.create_task(cache.get_series("USD", "KRW", TrendRange.ONE_MONTH))
        for _ in range(5):
            await asyncio.sleep(0)
        entry = await cache.get_series("USD", "KRW", TrendRange.ONE_YEAR)
        release.set()

        with pytest.raises(RequestSuperseded):
            await first
        keys = list(cache.cached_keys())
        assert [k.range for k in keys] == [TrendRange.ONE_YEAR]
        assert entry.window_start == date(2025, 10, 19)


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_purges_every_window(self, mock_api: AsyncMock) -> None:
        day = {"value": date(2026, 10, 18)}
        cache = SeriesCache(mock_api, RateCache(mock_api), today=lambda: day["value"])

        await cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        day["value"] = date(2026, 10, 19)
        await cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        await cache.get_series("USD", "KRW", TrendRange.ONE_YEAR)
        assert len(list(cache.cached_keys())) == 3

        cache.invalidate("USD", "KRW", TrendRange.ONE_MONTH)

        assert [k.range for k in cache.cached_keys()] == [TrendRange.ONE_YEAR]

    @pytest.mark.asyncio
    async def test_forces_refetch(self, series_cache: SeriesCache, mock_api: AsyncMock) -> None:
        await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        series_cache.invalidate("USD", "KRW", TrendRange.ONE_MONTH)
        await series_cache.get_series("USD", "KRW", TrendRange.ONE_MONTH)
        assert mock_api.fetch_history.await_count == 2

    def test_unknown_key_is_noop(self, series_cache: SeriesCache) -> None:
        series_cache.invalidate("USD", "KRW", TrendRange.ALL)
        series_cache.invalidate("USD", "KRW", TrendRange.ALL)
        assert not series_cache.cached_keys()
