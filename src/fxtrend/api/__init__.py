"""Remote rate services -- abstract contract, HTTP implementation and payload models."""

from fxtrend.api.client import RatesApi
from fxtrend.api.http_client import HttpRatesApi
from fxtrend.api.payloads import HistoryPayload, LatestRatesPayload

__all__ = ["HistoryPayload", "HttpRatesApi", "LatestRatesPayload", "RatesApi"]
