"""
Market data for demo mode.

Provides the fixed demo quote batch and a simulator that generates
random-walk quotes around it, so the dashboard can run without an API key.
"""

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field

from discopic.core.types import Quote
from discopic.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


# (exchange, pair, ask, bid, ask_volume, bid_volume)
DEMO_BOOK: tuple[tuple[str, str, float, float, float, float], ...] = (
    # BTC/USDT
    ("BINANCE", "BTC/USDT", 42150.50, 42148.20, 2.5, 3.1),
    ("COINBASE", "BTC/USDT", 42195.75, 42193.40, 1.8, 2.2),
    ("KRAKEN", "BTC/USDT", 42168.30, 42166.10, 3.2, 2.9),
    ("BITFINEX", "BTC/USDT", 42180.90, 42178.50, 2.1, 2.5),
    # ETH/USDT
    ("BINANCE", "ETH/USDT", 2245.80, 2245.20, 15.5, 18.2),
    ("COINBASE", "ETH/USDT", 2252.30, 2251.70, 12.3, 14.7),
    ("KRAKEN", "ETH/USDT", 2248.60, 2248.00, 16.8, 15.1),
    ("BITFINEX", "ETH/USDT", 2250.40, 2249.80, 13.2, 16.5),
    # BNB/USDT
    ("BINANCE", "BNB/USDT", 312.45, 312.20, 45.2, 52.8),
    ("COINBASE", "BNB/USDT", 314.60, 314.35, 38.5, 41.2),
    ("KRAKEN", "BNB/USDT", 313.20, 312.95, 42.1, 48.6),
    ("BITFINEX", "BNB/USDT", 313.85, 313.60, 39.7, 44.3),
)


def demo_quotes(captured_at_ms: int | None = None) -> list[Quote]:
    """
    Get the fixed demo batch.

    Args:
        captured_at_ms: Timestamp stamped on every quote (default: now).
    """
    timestamp = get_timestamp_ms() if captured_at_ms is None else captured_at_ms
    return [
        Quote(
            exchange=exchange,
            pair=pair,
            ask=ask,
            bid=bid,
            ask_volume=ask_volume,
            bid_volume=bid_volume,
            captured_at_ms=timestamp,
        )
        for exchange, pair, ask, bid, ask_volume, bid_volume in DEMO_BOOK
    ]


@dataclass
class SimulatedBook:
    """Random-walk state for one (exchange, pair) book."""

    exchange: str
    pair: str
    base_price: float
    spread_pct: float
    ask_volume: float
    bid_volume: float
    volatility: float = 0.0008  # Price change per step (0.08%)
    current_price: float = field(init=False)

    def __post_init__(self) -> None:
        self.current_price = self.base_price


class MarketSimulator:
    """
    Simulated quote source for demo mode.

    Features:
    - Gaussian random walk per exchange, mean-reverting to the demo price
    - Bid-ask spread taken from the demo book
    - Random volume jitter
    - Same ``get_all_quotes`` contract as the live client
    """

    def __init__(
        self,
        volatility: float = 0.0008,
        reversion: float = 0.05,
        seed: int | None = None,
    ) -> None:
        """
        Initialize market simulator.

        Args:
            volatility: Standard deviation of each step, as a fraction of price.
            reversion: Fraction of the distance to the base price recovered per step.
            seed: Seed for reproducible runs.
        """
        self._rng = random.Random(seed)
        self._reversion = reversion
        self._books: dict[tuple[str, str], SimulatedBook] = {}
        self._steps = 0

        for exchange, pair, ask, bid, ask_volume, bid_volume in DEMO_BOOK:
            mid = (ask + bid) / 2
            self._books[(exchange, pair)] = SimulatedBook(
                exchange=exchange,
                pair=pair,
                base_price=mid,
                spread_pct=(ask - bid) / mid,
                ask_volume=ask_volume,
                bid_volume=bid_volume,
                volatility=volatility,
            )

    def _step(self, book: SimulatedBook) -> None:
        shock = self._rng.gauss(0, book.volatility)
        drift = (book.base_price - book.current_price) * self._reversion
        book.current_price = book.current_price * (1 + shock) + drift

    def _quote(self, book: SimulatedBook, captured_at_ms: int) -> Quote:
        half_spread = book.current_price * book.spread_pct / 2
        return Quote(
            exchange=book.exchange,
            pair=book.pair,
            ask=round(book.current_price + half_spread, 8),
            bid=round(book.current_price - half_spread, 8),
            ask_volume=round(book.ask_volume * self._rng.uniform(0.8, 1.2), 6),
            bid_volume=round(book.bid_volume * self._rng.uniform(0.8, 1.2), 6),
            captured_at_ms=captured_at_ms,
        )

    async def get_all_quotes(
        self,
        pairs: Sequence[str],
        exchanges: Sequence[str],
        api_key: str = "",
    ) -> list[Quote]:
        """
        Advance every requested book one step and quote it.

        Unknown (pair, exchange) combinations are skipped, the way a venue
        without a market is skipped by the live client. ``api_key`` is ignored.
        """
        self._steps += 1
        now = get_timestamp_ms()
        quotes: list[Quote] = []

        for pair in pairs:
            for exchange in exchanges:
                book = self._books.get((exchange, pair))
                if book is None:
                    continue
                self._step(book)
                quotes.append(self._quote(book, now))

        logger.debug(f"Simulated {len(quotes)} quotes (step {self._steps})")
        return quotes

    def get_current_prices(self) -> dict[tuple[str, str], float]:
        """Get current mid prices by (exchange, pair)."""
        return {key: book.current_price for key, book in self._books.items()}

    @property
    def steps(self) -> int:
        """Number of batches generated."""
        return self._steps
