"""Shared data models for the rate caches, the chart engine and the viewer.

Rates quoted for conversion use Decimal. Series values are floats: they only
ever feed chart coordinates and readouts.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class TrendRange(str, Enum):
    """Preset historical windows selectable in the trend view."""

    ONE_MONTH = "1M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    FIVE_YEARS = "5Y"
    TEN_YEARS = "10Y"
    ALL = "ALL"


@dataclass(frozen=True)
class RatesSnapshot:
    """All live rates for one base currency, replaced wholesale on refresh."""

    base: str
    rates: Mapping[str, Decimal]
    observed_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))


@dataclass(frozen=True)
class SeriesPoint:
    """One sample of a pair's historical value.

    ``live_observed_at`` is only set on the synthetic trailing point appended
    from the live rate when the historical feed lags behind today.
    """

    time: datetime
    value: float
    date_label: str
    live_observed_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.live_observed_at is not None


@dataclass(frozen=True)
class SeriesKey:
    """Composite cache key of a series entry."""

    base: str
    quote: str
    range: TrendRange
    window_start: date
    window_end: date

    def matches(self, base: str, quote: str, trend_range: TrendRange) -> bool:
        """Return True if the key belongs to (base, quote, range) on any window."""
        return (self.base, self.quote, self.range) == (base, quote, trend_range)


@dataclass(frozen=True)
class SeriesEntry:
    """A downsampled point sequence for one pair and resolved window.

    Holds at most ``downsample_cap + 2`` points: up to ``cap + 1`` strided
    historical samples (the last observation is always kept) plus the live
    point appended when the feed lags behind today.
    """

    points: tuple[SeriesPoint, ...]
    window_start: date
    window_end: date
    last_point_date: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.points


@dataclass(frozen=True)
class DisplayResult:
    """What the conversion panel shows: a value line and a meta/status line."""

    value_text: str
    meta_text: str
    is_error: bool = False
    amount: Decimal | None = None


@dataclass
class TrendStatus:
    """Status line under the chart."""

    text: str = ""
    is_error: bool = False
