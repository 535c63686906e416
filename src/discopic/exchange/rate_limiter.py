"""
Request budgeting for the market-data API.

Combines a token bucket (short bursts) with a daily request quota
(the provider's hard limit, reset at UTC midnight).
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final

from discopic.config.constants import DAILY_REQUEST_QUOTA, REQUESTS_PER_SECOND
from discopic.utils.time import get_timestamp_ms


# Burst capacity as a multiple of the per-second rate
BURST_MULTIPLIER: Final[int] = 2


class QuotaExhaustedError(Exception):
    """Raised when the daily request quota has been spent."""

    def __init__(self, used: int, quota: int) -> None:
        super().__init__(f"Daily request quota exhausted ({used}/{quota})")
        self.used = used
        self.quota = quota


@dataclass
class TokenBucket:
    """
    Token bucket implementation for rate limiting.

    Tokens are added at a constant rate up to a maximum capacity.
    Each request consumes one or more tokens.
    """

    capacity: int
    refill_rate: float  # tokens per second
    tokens: float = field(init=False)
    last_refill: int = field(init=False)  # milliseconds
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize with full bucket."""
        self.tokens = float(self.capacity)
        self.last_refill = get_timestamp_ms()

    def _refill(self) -> None:
        """Add tokens based on elapsed time."""
        now = get_timestamp_ms()
        elapsed_seconds = (now - self.last_refill) / 1000.0

        self.tokens = min(
            self.capacity,
            self.tokens + (elapsed_seconds * self.refill_rate),
        )
        self.last_refill = now

    async def acquire(self, tokens: int = 1) -> None:
        """
        Acquire tokens, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire.
        """
        async with self._lock:
            self._refill()

            if self.tokens < tokens:
                wait_seconds = (tokens - self.tokens) / self.refill_rate
                await asyncio.sleep(wait_seconds)
                self._refill()

            self.tokens -= tokens

    async def try_acquire(self, tokens: int = 1) -> bool:
        """
        Try to acquire tokens without waiting.

        Returns:
            True if tokens were acquired, False if not enough available.
        """
        async with self._lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False


def _utc_day() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%d")


class DailyQuota:
    """Counts requests per UTC day against a fixed quota."""

    def __init__(self, quota: int, day_fn: Callable[[], str] = _utc_day) -> None:
        """
        Initialize quota tracker.

        Args:
            quota: Requests allowed per day.
            day_fn: Returns the current day key, injectable for tests.
        """
        self._quota = quota
        self._day_fn = day_fn
        self._day = day_fn()
        self._used = 0

    def _roll(self) -> None:
        today = self._day_fn()
        if today != self._day:
            self._day = today
            self._used = 0

    def consume(self) -> None:
        """
        Record one request.

        Raises:
            QuotaExhaustedError: If the quota for today is already spent.
        """
        self._roll()
        if self._used >= self._quota:
            raise QuotaExhaustedError(self._used, self._quota)
        self._used += 1

    @property
    def remaining(self) -> int:
        """Requests left today."""
        self._roll()
        return max(0, self._quota - self._used)

    @property
    def used(self) -> int:
        self._roll()
        return self._used


class RateLimiter:
    """
    Rate limiter for market-data requests.

    A request first spends one unit of the daily quota (failing fast when
    none is left) and then waits for a burst token.
    """

    def __init__(
        self,
        requests_per_second: int = REQUESTS_PER_SECOND,
        daily_quota: int = DAILY_REQUEST_QUOTA,
    ) -> None:
        """
        Initialize rate limiter with specified limits.

        Args:
            requests_per_second: Maximum requests per second.
            daily_quota: Maximum requests per UTC day.
        """
        self._bucket = TokenBucket(
            capacity=requests_per_second * BURST_MULTIPLIER,
            refill_rate=float(requests_per_second),
        )
        self._quota = DailyQuota(daily_quota)

    async def acquire(self) -> None:
        """
        Acquire permission for one request.

        Raises:
            QuotaExhaustedError: If today's quota is spent.
        """
        self._quota.consume()
        await self._bucket.acquire(1)

    @property
    def remaining_today(self) -> int:
        """Requests left in today's quota."""
        return self._quota.remaining

    @property
    def available_burst(self) -> float:
        """Approximate number of immediately available tokens."""
        return self._bucket.tokens
