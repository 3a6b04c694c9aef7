"""Shared test fixtures for the currency trend viewer."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from fxtrend.api.client import RatesApi
from fxtrend.config import AppSettings, ChartSettings, ViewerSettings

TODAY = date(2026, 10, 19)

LATEST_STAMP = "Mon, 19 Oct 2026 00:02:31 +0000"


def latest_payload(base: str, rates: dict[str, float], result: str = "success") -> dict:
    return {
        "result": result,
        "base_code": base,
        "rates": rates,
        "time_last_update_utc": LATEST_STAMP,
    }


def history_payload(quote: str, values: dict[str, object]) -> dict:
    return {"amount": 1.0, "rates": {day: {quote: value} for day, value in values.items()}}


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def settings() -> AppSettings:
    """AppSettings with a small 1x surface and a short debounce."""
    return AppSettings(
        log_level="DEBUG",
        chart=ChartSettings(width=400, height=200, pixel_ratio=1.0, default_range="1M"),
        viewer=ViewerSettings(debounce_seconds=0.01, default_from="USD", default_to="KRW"),
    )


@pytest.fixture
def make_latest():
    """Factory for ``GET /latest/{base}`` payloads."""
    return latest_payload


@pytest.fixture
def make_history():
    """Factory for ``GET /{start}..{end}`` payloads."""
    return history_payload


@pytest.fixture
def mock_api() -> AsyncMock:
    """RatesApi mock answering USD rates and a three-day USD->KRW history."""
    api = AsyncMock(spec=RatesApi)
    api.fetch_currencies = AsyncMock(
        return_value={"USD": "United States Dollar", "KRW": "South Korean Won", "EUR": "Euro"}
    )
    api.fetch_latest = AsyncMock(
        side_effect=lambda base: latest_payload(base, {"KRW": 1350, "EUR": 0.92, "USD": 1})
    )
    api.fetch_history = AsyncMock(
        return_value=history_payload(
            "KRW",
            {"2026-10-14": 1340.0, "2026-10-15": 1345.5, "2026-10-16": 1348.25},
        )
    )
    return api
