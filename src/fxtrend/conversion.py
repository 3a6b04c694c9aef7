"""Amount conversion backed by the live rates cache."""

from decimal import Decimal, InvalidOperation

from fxtrend.cache.rate_cache import RateCache
from fxtrend.exceptions import (
    InvalidInputError,
    RatesFetchError,
    RateUnavailableError,
)
from fxtrend.formatting import format_amount, format_observed_at
from fxtrend.logging import get_logger
from fxtrend.models import DisplayResult

logger = get_logger(__name__)

FETCH_FAILED_TEXT = "Could not convert right now. Try again."


def parse_amount(raw: str | int | float | Decimal | None) -> Decimal:
    """Parse a user-entered amount into a finite, non-negative Decimal.

    Raises:
        InvalidInputError: empty, non-numeric, non-finite or negative input.
    """
    if raw is None or isinstance(raw, bool):
        raise InvalidInputError("Enter a valid non-negative amount.")
    try:
        amount = Decimal(str(raw).strip().replace(",", ""))
    except InvalidOperation as exc:
        raise InvalidInputError("Enter a valid non-negative amount.") from exc
    if not amount.is_finite() or amount < 0:
        raise InvalidInputError("Enter a valid non-negative amount.")
    return amount


class ConversionService:
    """Turns an amount and a currency pair into a ``DisplayResult``."""

    def __init__(self, rate_cache: RateCache) -> None:
        self._rate_cache = rate_cache

    async def convert(
        self,
        amount: str | int | float | Decimal | None,
        from_code: str | None,
        to_code: str | None,
        force_refresh: bool = False,
    ) -> DisplayResult:
        """Convert ``amount`` and describe the rate used.

        Input and fetch failures become an error ``DisplayResult``.
        ``RequestSuperseded`` propagates so the caller can leave the panel as is.
        """
        try:
            return await self.compute(amount, from_code, to_code, force_refresh)
        except InvalidInputError as exc:
            return DisplayResult("-", str(exc), is_error=True)
        except (RatesFetchError, RateUnavailableError) as exc:
            logger.warning("conversion_failed", source=from_code, target=to_code, error=str(exc))
            return DisplayResult("-", FETCH_FAILED_TEXT, is_error=True)

    async def compute(
        self,
        amount: str | int | float | Decimal | None,
        from_code: str | None,
        to_code: str | None,
        force_refresh: bool = False,
    ) -> DisplayResult:
        """Like ``convert`` but raises instead of returning error results."""
        value = parse_amount(amount)
        if not from_code or not to_code:
            raise InvalidInputError("Choose both source and target currencies.")

        if from_code == to_code:
            return DisplayResult(
                f"{format_amount(value)} {to_code}",
                f"1 {from_code} = 1 {to_code}",
                amount=value,
            )

        if force_refresh:
            self._rate_cache.invalidate(from_code)

        rate = await self._rate_cache.get_rate_for(from_code, to_code)
        converted = value * rate
        snapshot = self._rate_cache.peek(from_code)
        observed = format_observed_at(snapshot.observed_at if snapshot else None)
        logger.debug("converted", source=from_code, target=to_code, rate=str(rate))
        return DisplayResult(
            f"{format_amount(converted)} {to_code}",
            f"1 {from_code} = {format_amount(rate)} {to_code} | Updated: {observed}",
            amount=converted,
        )
