"""Rate and series caches with latest-wins request cancellation."""

from fxtrend.cache.gate import CancellationToken, RequestGate
from fxtrend.cache.rate_cache import RateCache
from fxtrend.cache.series_cache import SeriesCache, downsample, resolve_window

__all__ = [
    "CancellationToken",
    "RateCache",
    "RequestGate",
    "SeriesCache",
    "downsample",
    "resolve_window",
]
