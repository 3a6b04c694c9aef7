"""Live rates cache keyed by base currency.

One snapshot per base, created on first request and kept until invalidated
or replaced by a newer fetch for the same base. At most one rates request is
in flight: asking for a different base supersedes the outstanding one, and
asking for the same base joins it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from email.utils import parsedate_to_datetime

import httpx
from pydantic import ValidationError

from fxtrend.api.client import RatesApi
from fxtrend.api.payloads import LatestRatesPayload
from fxtrend.cache.gate import CancellationToken, RequestGate
from fxtrend.exceptions import RatesFetchError, RateUnavailableError
from fxtrend.logging import get_logger
from fxtrend.models import RatesSnapshot

logger = get_logger(__name__)


def parse_observed_at(raw: str | None) -> datetime | None:
    """Parse an RFC 2822 update stamp (``Fri, 27 Mar 2020 00:00:01 +0000``)."""
    if not raw:
        return None
    try:
        observed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.warning("invalid_observed_at", raw=raw)
        return None
    if observed.tzinfo is None:
        observed = observed.replace(tzinfo=timezone.utc)
    return observed


class RateCache:
    """Memoizes live rate snapshots by base currency.

    The snapshot store is owned state passed in by the session (or created
    here), so one store lives exactly as long as the viewer that owns it.
    """

    def __init__(
        self,
        api: RatesApi,
        store: dict[str, RatesSnapshot] | None = None,
    ) -> None:
        self._api = api
        self._snapshots: dict[str, RatesSnapshot] = store if store is not None else {}
        self._gate: RequestGate[RatesSnapshot] = RequestGate("rates")

    def peek(self, base: str) -> RatesSnapshot | None:
        """Return the cached snapshot for ``base`` without fetching."""
        return self._snapshots.get(base)

    async def get_rates(self, base: str) -> RatesSnapshot:
        """Return all live rates for ``base``, fetching on a cache miss.

        Raises:
            RatesFetchError: network failure, non-2xx status or bad payload.
            RequestSuperseded: a request for another base replaced this one.
        """
        cached = self._snapshots.get(base)
        if cached is not None:
            logger.debug("rates_cache_hit", base=base)
            return cached

        return await self._gate.run(base, lambda token: self._fetch(base, token))

    async def get_rate_for(self, base: str, quote: str) -> Decimal:
        """Return the live rate of one ``base`` unit in ``quote``.

        Raises:
            RateUnavailableError: the snapshot has no rate for ``quote``.
        """
        snapshot = await self.get_rates(base)
        rate = snapshot.rates.get(quote)
        if rate is None:
            raise RateUnavailableError(f"No {base}->{quote} rate in snapshot")
        return rate

    def invalidate(self, base: str) -> None:
        """Drop the snapshot for ``base`` so the next request refetches.

        Invalidating a base that is not cached is a no-op.
        """
        if self._snapshots.pop(base, None) is not None:
            logger.debug("rates_invalidated", base=base)

    async def _fetch(self, base: str, token: CancellationToken) -> RatesSnapshot:
        logger.info("rates_fetch_started", base=base)
        try:
            raw = await self._api.fetch_latest(base)
            payload = LatestRatesPayload.model_validate(raw)
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            token.raise_if_cancelled()
            logger.warning("rates_fetch_failed", base=base, error=str(exc))
            raise RatesFetchError(f"Failed to fetch rates for {base}") from exc

        if payload.result != "success":
            token.raise_if_cancelled()
            logger.warning("rates_fetch_rejected", base=base, result=payload.result)
            raise RatesFetchError(f"Rates service answered {payload.result!r} for {base}")

        token.raise_if_cancelled()
        snapshot = RatesSnapshot(
            base=base,
            rates=payload.rates,
            observed_at=parse_observed_at(payload.time_last_update_utc),
        )
        self._snapshots[base] = snapshot
        logger.info("rates_fetched", base=base, quotes=len(snapshot.rates))
        return snapshot
