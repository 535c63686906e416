"""
Type definitions for the spread monitor.

This module contains all dataclasses, enums and Protocol definitions
shared between the detector, the analytics helpers and the I/O
collaborators. Market data records are frozen: a Quote or an Opportunity
is a snapshot and is never updated in place.
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from discopic.config.constants import DEFAULT_FEE_PCT


# =============================================================================
# Enums
# =============================================================================


class SortKey(str, Enum):
    """Orderings supported by the opportunity table."""

    PROFIT = "profit"
    PAIR = "pair"
    SPREAD = "spread"


class ProfitClass(str, Enum):
    """Qualitative profit bucket used for styling."""

    POSITIVE = "profit-positive"
    NEUTRAL = "profit-neutral"
    NEGATIVE = "profit-negative"


# =============================================================================
# Market Data Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Quote:
    """
    One exchange's top of book for one trading pair.

    ``ask`` is what a buyer pays, ``bid`` is what a seller receives.
    """

    exchange: str
    pair: str
    ask: float
    bid: float
    ask_volume: float
    bid_volume: float
    captured_at_ms: int


class FeeSchedule(Mapping[str, float]):
    """
    Read-only exchange -> fee percent lookup.

    Exchanges without an entry are charged ``default`` percent.
    """

    __slots__ = ("_fees", "_default")

    def __init__(
        self,
        fees: Mapping[str, float] | None = None,
        default: float = DEFAULT_FEE_PCT,
    ) -> None:
        self._fees = dict(fees or {})
        self._default = default

    def __getitem__(self, exchange: str) -> float:
        return self._fees[exchange]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fees)

    def __len__(self) -> int:
        return len(self._fees)

    def fee_for(self, exchange: str) -> float:
        """Get the fee percent for an exchange, falling back to the default."""
        return self._fees.get(exchange, self._default)

    @property
    def default(self) -> float:
        """Fee applied to exchanges missing from the schedule."""
        return self._default

    def __repr__(self) -> str:
        return f"FeeSchedule({self._fees!r}, default={self._default})"


# =============================================================================
# Opportunity Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Opportunity:
    """
    Profitable directed exchange pair for one trading pair.

    Buy at ``buy_exchange``'s ask, sell at ``sell_exchange``'s bid.
    Percentages are relative to the buy price.
    """

    pair: str
    buy_exchange: str
    buy_price: float
    sell_exchange: str
    sell_price: float
    spread: float
    gross_profit_pct: float
    net_profit_pct: float
    buy_fee_pct: float
    sell_fee_pct: float
    total_fee_pct: float
    tradeable_volume: float
    detected_at_ms: int

    @property
    def base_asset(self) -> str:
        """Asset being traded (BTC in BTC/USDT)."""
        return self.pair.partition("/")[0]

    @property
    def route(self) -> str:
        """Human-readable route, e.g. ``BTC/USDT BINANCE->COINBASE``."""
        return f"{self.pair} {self.buy_exchange}->{self.sell_exchange}"

    def same_content(self, other: "Opportunity") -> bool:
        """Compare everything except the detection timestamp."""
        return (
            self.pair == other.pair
            and self.buy_exchange == other.buy_exchange
            and self.buy_price == other.buy_price
            and self.sell_exchange == other.sell_exchange
            and self.sell_price == other.sell_price
            and self.net_profit_pct == other.net_profit_pct
            and self.tradeable_volume == other.tradeable_volume
        )


@dataclass(slots=True, frozen=True)
class SummaryStats:
    """Aggregate figures over a set of opportunities."""

    count: int = 0
    avg_net_profit_pct: float = 0.0
    max_net_profit_pct: float = 0.0
    total_tradeable_volume: float = 0.0


@dataclass(slots=True, frozen=True)
class ProfitProjection:
    """
    Breakdown of running one opportunity with a fixed investment.

    Amounts ending in ``_amount`` on the buy side are base-currency units;
    everything else is in the pair's quote currency.
    """

    investment_amount: float
    buy_amount: float
    buy_fee_amount: float
    net_buy_amount: float
    sell_value: float
    sell_fee_amount: float
    net_sell_value: float
    profit: float
    profit_pct: float


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class QuoteSource(Protocol):
    """Anything that can assemble a full batch of quotes."""

    async def get_all_quotes(
        self,
        pairs: Sequence[str],
        exchanges: Sequence[str],
        api_key: str,
    ) -> list[Quote]:
        """Fetch one quote per (pair, exchange) where available."""
        ...
