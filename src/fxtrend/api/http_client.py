"""Rates service implementation over ``httpx.AsyncClient``."""

from datetime import date

import httpx

from fxtrend.api.client import RatesApi
from fxtrend.config import ApiSettings
from fxtrend.logging import get_logger

logger = get_logger(__name__)


class HttpRatesApi(RatesApi):
    """Concrete client for the live-rate and historical-series services.

    Live rates and the historical feed are served by different hosts; both
    share one connection pool. Non-2xx responses raise ``httpx.HTTPStatusError``
    and the caches translate transport errors into their own exceptions.
    """

    def __init__(
        self,
        settings: ApiSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            timeout=settings.timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def fetch_currencies(self) -> dict:
        return await self._get_json(f"{self._settings.history_url}/currencies")

    async def fetch_latest(self, base: str) -> dict:
        return await self._get_json(f"{self._settings.latest_url}/latest/{base}")

    async def fetch_history(
        self, base: str, quote: str, start: date, end: date
    ) -> dict:
        url = f"{self._settings.history_url}/{start.isoformat()}..{end.isoformat()}"
        return await self._get_json(url, params={"from": base, "to": quote})

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()
        logger.debug("rates_api_closed")

    async def _get_json(self, url: str, params: dict | None = None) -> dict:
        logger.debug("rates_api_request", url=url, params=params)
        response = await self._client.get(url, params=params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object from {url}")
        return payload
