"""Pydantic models validating the shape of remote payloads."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict


class LatestRatesPayload(BaseModel):
    """Body of ``GET /latest/{base}``."""

    model_config = ConfigDict(extra="ignore")

    result: str
    rates: dict[str, Decimal]
    time_last_update_utc: str | None = None


class HistoryPayload(BaseModel):
    """Body of ``GET /{start}..{end}?from=..&to=..``.

    Inner values stay untyped: a date with a missing or non-numeric value is
    skipped by the series builder rather than failing the whole payload.
    """

    model_config = ConfigDict(extra="ignore")

    rates: dict[str, dict[str, Any]] = {}
