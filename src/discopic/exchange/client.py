"""
Async CoinAPI REST client.

Fetches top-of-book quotes for (pair, exchange) combinations with:
- A single pooled aiohttp session
- Fast JSON parsing with orjson
- A short-lived response cache
- Integrated rate limiting against the daily quota
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import aiohttp
import orjson
from pydantic import ValidationError

from discopic.config.constants import (
    API_KEY_HEADER,
    COINAPI_REST_URL,
    ENDPOINT_EXCHANGE_RATE,
    ENDPOINT_ORDERBOOK_CURRENT,
    HTTP_NO_DATA,
    PAIR_REQUEST_DELAY_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
)
from discopic.core.types import Quote
from discopic.exchange.cache import ResponseCache
from discopic.exchange.models import ExchangeRate, OrderbookSnapshot
from discopic.exchange.rate_limiter import QuotaExhaustedError, RateLimiter
from discopic.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class CoinAPIError(Exception):
    """Base exception for CoinAPI client errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class CoinAPIAuthError(CoinAPIError):
    """The API key was rejected."""


class CoinAPIRateLimitError(CoinAPIError):
    """The provider (or the local daily quota) refused the request."""


class CoinAPINoDataError(CoinAPIError):
    """The provider has no data for the requested symbol."""


def format_pair(pair: str) -> str:
    """Convert pair format (BTC/USDT -> BTC_USDT)."""
    return pair.replace("/", "_")


def spot_symbol_id(exchange: str, pair: str) -> str:
    """CoinAPI symbol id for a spot market, e.g. ``BINANCE_SPOT_BTC_USDT``."""
    return f"{exchange}_SPOT_{format_pair(pair)}"


class CoinAPIClient:
    """
    Async CoinAPI REST client.

    Fetches concurrently across exchanges for one pair and sequentially
    across pairs, pausing between pairs to stay under the burst limit.
    Implements the ``QuoteSource`` protocol.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = COINAPI_REST_URL,
        rate_limiter: RateLimiter | None = None,
        cache: ResponseCache | None = None,
        pair_delay_seconds: float = PAIR_REQUEST_DELAY_SECONDS,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: Default API key, used when a call does not pass one.
            base_url: REST base URL.
            rate_limiter: Optional rate limiter instance.
            cache: Optional response cache instance.
            pair_delay_seconds: Pause between pairs in ``get_all_quotes``.
            timeout_seconds: Total timeout per request.
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._rate_limiter = rate_limiter or RateLimiter()
        self._cache = cache or ResponseCache()
        self._pair_delay_seconds = pair_delay_seconds
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                keepalive_timeout=30,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        endpoint: str,
        api_key: str | None = None,
        use_cache: bool = True,
    ) -> Any:
        """
        Make a GET request, served from cache when possible.

        Args:
            endpoint: API endpoint path.
            api_key: API key for this request (default: client key).
            use_cache: False to always hit the network and leave the cache
                untouched.

        Returns:
            Parsed JSON response.

        Raises:
            CoinAPIAuthError: On HTTP 401.
            CoinAPIRateLimitError: On HTTP 429 or an exhausted daily quota.
            CoinAPINoDataError: On HTTP 550.
            CoinAPIError: On any other API, network or parsing error.
        """
        url = f"{self._base_url}{endpoint}"

        if use_cache:
            cached = self._cache.get(url)
            if cached is not None:
                return cached

        try:
            await self._rate_limiter.acquire()
        except QuotaExhaustedError as e:
            raise CoinAPIRateLimitError(
                "API rate limit exceeded. Please wait before trying again.", code=429
            ) from e

        session = await self._get_session()
        headers = {API_KEY_HEADER: api_key if api_key is not None else self._api_key}

        try:
            async with session.get(url, headers=headers) as response:
                data = await self._handle_response(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CoinAPIError("Network error. Please check your connection.") from e

        if use_cache:
            self._cache.set(url, data)
        return data

    async def _handle_response(self, response: aiohttp.ClientResponse) -> Any:
        """Map error statuses to exceptions and parse the body."""
        status = response.status

        if status == 401:
            raise CoinAPIAuthError("Invalid API key. Please check your settings.", code=status)
        if status == 429:
            raise CoinAPIRateLimitError(
                "API rate limit exceeded. Please wait before trying again.", code=status
            )
        if status == HTTP_NO_DATA:
            raise CoinAPINoDataError("No data available for this request.", code=status)
        if status >= 400:
            raise CoinAPIError(f"API error: {status} {response.reason or ''}".rstrip(), code=status)

        text = await response.text()
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise CoinAPIError(f"Invalid JSON response: {e}") from e

    # =========================================================================
    # Market Data
    # =========================================================================

    async def get_exchange_rate(self, pair: str, api_key: str | None = None) -> ExchangeRate:
        """
        Get the aggregated spot rate for a pair.

        Args:
            pair: Trading pair, BASE/QUOTE.
            api_key: Optional per-call API key.
        """
        base, _, quote = pair.partition("/")
        endpoint = ENDPOINT_EXCHANGE_RATE.format(base=base, quote=quote)
        data = await self._request(f"{endpoint}?invert=false", api_key)
        return ExchangeRate.model_validate(data)

    async def get_orderbook(
        self,
        exchange: str,
        pair: str,
        api_key: str | None = None,
    ) -> OrderbookSnapshot | None:
        """
        Get the current order book for one exchange and pair.

        Missing data, malformed bodies and transient failures are logged
        and reported as None so one bad venue does not sink the batch.

        Raises:
            CoinAPIAuthError: The API key was rejected.
            CoinAPIRateLimitError: No request budget is left.
        """
        symbol_id = spot_symbol_id(exchange, pair)
        endpoint = ENDPOINT_ORDERBOOK_CURRENT.format(symbol_id=symbol_id)

        try:
            data = await self._request(endpoint, api_key)
            return OrderbookSnapshot.model_validate(data)
        except (CoinAPIAuthError, CoinAPIRateLimitError):
            raise
        except CoinAPIError as e:
            logger.warning(f"Error fetching orderbook for {symbol_id}: {e}")
        except ValidationError as e:
            logger.warning(f"Malformed orderbook for {symbol_id}: {e.error_count()} errors")
        return None

    async def _get_quote(self, exchange: str, pair: str, api_key: str | None) -> Quote | None:
        orderbook = await self.get_orderbook(exchange, pair, api_key)
        if orderbook is None:
            return None

        best_ask, best_bid = orderbook.best_ask, orderbook.best_bid
        if best_ask is None or best_bid is None:
            return None

        return Quote(
            exchange=exchange,
            pair=pair,
            ask=best_ask.price,
            bid=best_bid.price,
            ask_volume=best_ask.size,
            bid_volume=best_bid.size,
            captured_at_ms=get_timestamp_ms(),
        )

    async def get_quotes_for_pair(
        self,
        pair: str,
        exchanges: Sequence[str],
        api_key: str | None = None,
    ) -> list[Quote]:
        """
        Get quotes for one pair from all exchanges concurrently.

        Returns:
            Quotes for exchanges that returned a two-sided book, in
            ``exchanges`` order.
        """
        results = await asyncio.gather(
            *(self._get_quote(exchange, pair, api_key) for exchange in exchanges)
        )
        return [quote for quote in results if quote is not None]

    async def get_all_quotes(
        self,
        pairs: Sequence[str],
        exchanges: Sequence[str],
        api_key: str | None = None,
    ) -> list[Quote]:
        """
        Get quotes for every pair and exchange.

        Pairs are fetched one after another with a short pause between
        them. Authentication and quota errors abort the batch.
        """
        all_quotes: list[Quote] = []

        for index, pair in enumerate(pairs):
            if index and self._pair_delay_seconds:
                await asyncio.sleep(self._pair_delay_seconds)

            quotes = await self.get_quotes_for_pair(pair, exchanges, api_key)
            logger.debug(f"{pair}: {len(quotes)}/{len(exchanges)} exchanges quoted")
            all_quotes.extend(quotes)

        return all_quotes

    async def test_api_key(self, api_key: str) -> tuple[bool, str | None]:
        """
        Check an API key with a cheap request.

        Always goes to the network; a cached response says nothing about
        the key being checked.

        Returns:
            Tuple of (valid, error message or None).
        """
        try:
            await self._request(
                ENDPOINT_EXCHANGE_RATE.format(base="BTC", quote="USD"),
                api_key,
                use_cache=False,
            )
        except CoinAPIError as e:
            return False, str(e)
        return True, None

    def clear_cache(self) -> None:
        """Drop all cached responses."""
        self._cache.clear()

    @property
    def remaining_requests(self) -> int:
        """Requests left in today's quota."""
        return self._rate_limiter.remaining_today

    async def __aenter__(self) -> "CoinAPIClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
