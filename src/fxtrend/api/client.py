"""Abstract rates service interface.

The caches and the viewer depend only on this contract, keeping the HTTP
details of the live-rate and historical-series services in the concrete
implementation.
"""

from abc import ABC, abstractmethod
from datetime import date


class RatesApi(ABC):
    """Abstract base class for the remote rate services."""

    @abstractmethod
    async def fetch_currencies(self) -> dict:
        """Return the currency directory as ``{code: display name}``."""
        ...

    @abstractmethod
    async def fetch_latest(self, base: str) -> dict:
        """Fetch all live rates quoted per unit of ``base``.

        Returns the raw payload: ``{"result": "success", "rates": {...},
        "time_last_update_utc": "..."}``.
        """
        ...

    @abstractmethod
    async def fetch_history(
        self, base: str, quote: str, start: date, end: date
    ) -> dict:
        """Fetch the daily series of ``base`` in ``quote`` between two dates.

        Returns the raw payload: ``{"rates": {"YYYY-MM-DD": {quote: value}}}``.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...
