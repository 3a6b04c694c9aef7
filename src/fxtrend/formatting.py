"""Number and timestamp formatting shared by the conversion panel and the chart."""

from datetime import datetime
from decimal import Decimal

MAX_FRACTION_DIGITS = 6


def format_amount(value: Decimal | float | int) -> str:
    """Group thousands and keep at most six fractional digits, trimming zeros.

    >>> format_amount(Decimal("135000"))
    '135,000'
    >>> format_amount(0.00012345678)
    '0.000123'
    """
    text = f"{Decimal(str(value)):,.{MAX_FRACTION_DIGITS}f}"
    text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_observed_at(observed_at: datetime | None) -> str:
    """Render an observation time as ``YYYY-MM-DD HH:MM UTC`` (or ``unknown``)."""
    if observed_at is None:
        return "unknown"
    return observed_at.strftime("%Y-%m-%d %H:%M %Z").strip()
