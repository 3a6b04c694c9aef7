"""Exceptions raised by the rate caches, the chart engine and the viewer.

Everything lives here so the caches, the conversion service and the viewer
can share one hierarchy without importing each other.
"""


class FxTrendError(Exception):
    """Base exception for all fxtrend errors."""


class RatesFetchError(FxTrendError):
    """Raised when live rates cannot be fetched or the payload is malformed."""


class RateUnavailableError(FxTrendError):
    """Raised when a quote currency is missing from a valid rates snapshot."""


class SeriesFetchError(FxTrendError):
    """Raised when a historical series cannot be fetched or parsed."""


class InvalidInputError(FxTrendError):
    """Raised for a non-numeric or negative amount, or an unset currency code."""


class RequestSuperseded(FxTrendError):
    """Raised to callers whose in-flight request was cancelled by a newer one.

    Not a failure: the viewer absorbs it without touching visible output.
    """
