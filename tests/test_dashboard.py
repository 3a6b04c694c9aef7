"""Tests for the dashboard API routes driving a viewer on a mocked rates API."""

import io
import time
from datetime import date
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from fxtrend.config import AppSettings
from fxtrend.dashboard.app import create_dashboard_app
from fxtrend.viewer import TREND_NOT_APPLICABLE_TEXT, CurrencyViewer


@pytest.fixture
def client(mock_api: AsyncMock, settings: AppSettings, today: date):
    app = create_dashboard_app()
    app.state.viewer = CurrencyViewer(mock_api, settings, today=lambda: today)
    with TestClient(app) as test_client:
        yield test_client


class TestConversionRoutes:
    def test_currencies_sorted(self, client: TestClient) -> None:
        response = client.get("/api/currencies")
        assert response.status_code == 200
        assert [c["code"] for c in response.json()] == ["EUR", "KRW", "USD"]

    def test_convert(self, client: TestClient) -> None:
        response = client.get("/api/convert", params={"amount": "100", "source": "USD", "target": "KRW"})
        body = response.json()
        assert body["value"] == "135,000 KRW"
        assert body["amount"] == "135000"
        assert body["error"] is False

    def test_convert_invalid_amount(self, client: TestClient) -> None:
        body = client.get("/api/convert", params={"amount": "abc"}).json()
        assert body["error"] is True
        assert body["value"] == "-"

    def test_debounced_amount(self, client: TestClient) -> None:
        assert client.post("/api/amount", params={"text": "100"}).json() == {"amount": "100"}
        time.sleep(0.2)
        state = client.get("/api/state").json()
        assert state["result"]["value"] == "135,000 KRW"

    def test_swap(self, client: TestClient) -> None:
        state = client.post("/api/swap").json()
        assert (state["from"], state["to"]) == ("KRW", "USD")


class TestTrendRoutes:
    def test_trend_and_chart_png(self, client: TestClient) -> None:
        state = client.post("/api/trend", json={"from_code": "USD", "to_code": "KRW", "range": "1M"}).json()
        assert state["range"] == "1M"
        assert state["status"].startswith("USD/KRW 1M")
        assert state["selection"]["selected_index"] == 3

        response = client.get("/api/chart.png")
        assert response.headers["content-type"] == "image/png"
        assert Image.open(io.BytesIO(response.content)).size == (400, 200)

    def test_identical_currencies(self, client: TestClient, mock_api: AsyncMock) -> None:
        state = client.post("/api/trend", json={"from_code": "EUR", "to_code": "EUR"}).json()
        assert state["status"] == TREND_NOT_APPLICABLE_TEXT
        assert state["selection"]["selected_index"] is None
        mock_api.fetch_history.assert_not_awaited()

    def test_unknown_range_rejected(self, client: TestClient) -> None:
        assert client.post("/api/trend", json={"range": "2W"}).status_code == 422

    def test_pointer_pin_and_unpin(self, client: TestClient) -> None:
        client.post("/api/trend", json={"from_code": "USD", "to_code": "KRW", "range": "1M"})

        selection = client.post("/api/pointer/down", json={"x": 20, "y": 100}).json()
        assert selection["pinned"] is True
        assert selection["readout"] == "2026-10-14: 1 USD = 1,340 KRW"
        assert selection["tooltip_left"] == 0.0

        selection = client.post("/api/pointer/move", json={"x": 1000, "y": 100}).json()
        assert selection["selected_index"] == 3

        selection = client.post("/api/pointer/down", json={"x": -5, "y": -5}).json()
        assert selection["pinned"] is False

    def test_resize(self, client: TestClient) -> None:
        body = client.post("/api/resize", json={"width": 300, "height": 150, "pixel_ratio": 2}).json()
        assert body == {"surface": [600, 300]}
