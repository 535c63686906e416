"""
Market-data and dashboard constants.

This module contains all hardcoded values used throughout the monitor.
Values are organized by category for easy maintenance and auditing.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final


# =============================================================================
# CoinAPI Endpoints
# =============================================================================

COINAPI_REST_URL: Final[str] = "https://rest.coinapi.io/v1"

# API Endpoints (formatted with symbol / asset ids)
ENDPOINT_ORDERBOOK_CURRENT: Final[str] = "/orderbooks/{symbol_id}/current"
ENDPOINT_EXCHANGE_RATE: Final[str] = "/exchangerate/{base}/{quote}"

# Header carrying the API key
API_KEY_HEADER: Final[str] = "X-CoinAPI-Key"

# Status code CoinAPI uses for "no data for this symbol"
HTTP_NO_DATA: Final[int] = 550


# =============================================================================
# Trading Fees
# =============================================================================

# Fee charged on a leg when the exchange has no entry in the schedule (0.1%)
DEFAULT_FEE_PCT: Final[float] = 0.1

# Taker fees in percent, as published by each venue
DEFAULT_FEES: Final[Mapping[str, float]] = MappingProxyType(
    {
        "BINANCE": 0.1,
        "COINBASE": 0.6,
        "KRAKEN": 0.26,
        "BITFINEX": 0.2,
        "BITSTAMP": 0.25,
    }
)


# =============================================================================
# Watch List
# =============================================================================

DEFAULT_PAIRS: Final[tuple[str, ...]] = ("BTC/USDT", "ETH/USDT", "BNB/USDT")
DEFAULT_EXCHANGES: Final[tuple[str, ...]] = ("BINANCE", "COINBASE", "KRAKEN", "BITFINEX")

# Sentinel accepted by the pair filter meaning "no filtering"
ALL_PAIRS: Final[str] = "all"


# =============================================================================
# Detection & Validity
# =============================================================================

# Minimum net profit (percent) for an opportunity to be reported
DEFAULT_MIN_PROFIT_PCT: Final[float] = 0.5

# Opportunities older than this are considered stale (milliseconds)
OPPORTUNITY_MAX_AGE_MS: Final[int] = 60_000

# Investment used for the detail breakdown (quote currency)
DEFAULT_PROJECTION_AMOUNT: Final[float] = 1000.0


# =============================================================================
# Polling & Rate Limiting
# =============================================================================

DEFAULT_REFRESH_INTERVAL_SECONDS: Final[int] = 30
MIN_REFRESH_INTERVAL_SECONDS: Final[int] = 5

# Responses are reused for this long within a refresh cycle (milliseconds)
RESPONSE_CACHE_TTL_MS: Final[int] = 10_000

# Pause between pairs to stay clear of the per-second limit
PAIR_REQUEST_DELAY_SECONDS: Final[float] = 0.1

# CoinAPI free tier
REQUESTS_PER_SECOND: Final[int] = 5
DAILY_REQUEST_QUOTA: Final[int] = 100

REQUEST_TIMEOUT_SECONDS: Final[float] = 10.0


# =============================================================================
# Settings Storage
# =============================================================================

CONFIG_FILE_NAME: Final[str] = "discopic_config.json"


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
