"""Market-data integration with CoinAPI."""

from discopic.exchange.cache import ResponseCache
from discopic.exchange.client import (
    CoinAPIAuthError,
    CoinAPIClient,
    CoinAPIError,
    CoinAPINoDataError,
    CoinAPIRateLimitError,
)
from discopic.exchange.models import ExchangeRate, OrderbookSnapshot
from discopic.exchange.rate_limiter import QuotaExhaustedError, RateLimiter


__all__ = [
    "CoinAPIAuthError",
    "CoinAPIClient",
    "CoinAPIError",
    "CoinAPINoDataError",
    "CoinAPIRateLimitError",
    "ExchangeRate",
    "OrderbookSnapshot",
    "QuotaExhaustedError",
    "RateLimiter",
    "ResponseCache",
]
