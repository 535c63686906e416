"""
Cross-exchange opportunity detection.

Turns one batch of quotes into a ranked list of fee-adjusted, directed
buy/sell opportunities. Pure and synchronous: no I/O, no shared state,
inputs are never mutated.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from discopic.config.constants import DEFAULT_MIN_PROFIT_PCT
from discopic.core.types import FeeSchedule, Opportunity, Quote
from discopic.strategy.calculator import ArbitrageCalculator
from discopic.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


def group_by_pair(quotes: Iterable[Quote]) -> dict[str, list[Quote]]:
    """
    Partition quotes by trading pair.

    Pairs appear in first-seen order; quotes keep their input order
    within a pair.
    """
    grouped: dict[str, list[Quote]] = {}
    for quote in quotes:
        grouped.setdefault(quote.pair, []).append(quote)
    return grouped


def detect_opportunities(
    quotes: Iterable[Quote],
    fees: Mapping[str, float],
    min_net_profit_pct: float = DEFAULT_MIN_PROFIT_PCT,
    now_ms: int | None = None,
) -> list[Opportunity]:
    """
    Find every profitable directed exchange pair in a batch of quotes.

    For each pair with at least two quotes, every ordered combination
    (buy on i, sell on j, i != j) is evaluated, so both directions between
    two exchanges are checked independently. Legs quoted by the same
    exchange are never paired. Duplicate quotes are not merged.

    Args:
        quotes: Complete quote batch.
        fees: Exchange -> fee percent; missing exchanges pay 0.1%.
        min_net_profit_pct: Minimum net profit (percent) to report.
        now_ms: Detection timestamp (default: now).

    Returns:
        Opportunities sorted by net profit, highest first. Ties keep
        enumeration order. Empty when nothing qualifies.
    """
    calculator = ArbitrageCalculator(fees)
    detected_at = get_timestamp_ms() if now_ms is None else now_ms
    opportunities: list[Opportunity] = []

    for pair_quotes in group_by_pair(quotes).values():
        if len(pair_quotes) < 2:
            continue

        for i, buy_quote in enumerate(pair_quotes):
            for j, sell_quote in enumerate(pair_quotes):
                if i == j or buy_quote.exchange == sell_quote.exchange:
                    continue

                opportunity = calculator.calculate_opportunity(
                    buy_quote, sell_quote, detected_at
                )
                if opportunity and opportunity.net_profit_pct >= min_net_profit_pct:
                    opportunities.append(opportunity)

    # Sort by net profit (descending)
    opportunities.sort(key=lambda x: x.net_profit_pct, reverse=True)

    return opportunities


def _as_schedule(fees: Mapping[str, float] | None) -> FeeSchedule:
    return fees if isinstance(fees, FeeSchedule) else FeeSchedule(fees)


@dataclass
class DetectionStats:
    """Running totals across scans."""

    total_scans: int = 0
    quotes_scanned: int = 0
    opportunities_found: int = 0
    best_net_profit_pct: float = 0.0


class OpportunityDetector:
    """
    Detector bound to a fee schedule and profit threshold.

    Thin stateful wrapper around ``detect_opportunities`` for callers that
    scan repeatedly with the same settings; keeps scan statistics.
    """

    def __init__(
        self,
        fees: Mapping[str, float] | None = None,
        min_profit_threshold: float = DEFAULT_MIN_PROFIT_PCT,
    ) -> None:
        """
        Initialize opportunity detector.

        Args:
            fees: Exchange -> fee percent.
            min_profit_threshold: Minimum net profit % to report.
        """
        self._fees = _as_schedule(fees)
        self._min_profit_threshold = min_profit_threshold
        self._stats = DetectionStats()

    def scan(self, quotes: Sequence[Quote], now_ms: int | None = None) -> list[Opportunity]:
        """
        Scan a quote batch.

        Args:
            quotes: Complete quote batch.
            now_ms: Detection timestamp (default: now).

        Returns:
            Ranked opportunities.
        """
        opportunities = detect_opportunities(
            quotes, self._fees, self._min_profit_threshold, now_ms=now_ms
        )

        self._stats.total_scans += 1
        self._stats.quotes_scanned += len(quotes)
        self._stats.opportunities_found += len(opportunities)
        if opportunities and opportunities[0].net_profit_pct > self._stats.best_net_profit_pct:
            self._stats.best_net_profit_pct = opportunities[0].net_profit_pct

        logger.debug(
            f"Scanned {len(quotes)} quotes, "
            f"found {len(opportunities)} opportunities "
            f"(min profit {self._min_profit_threshold:.2f}%)"
        )

        return opportunities

    def get_best_opportunity(self, quotes: Sequence[Quote]) -> Opportunity | None:
        """Get the single best opportunity in a batch, or None."""
        opportunities = self.scan(quotes)
        return opportunities[0] if opportunities else None

    @property
    def stats(self) -> DetectionStats:
        """Get detection statistics."""
        return self._stats

    @property
    def min_profit_threshold(self) -> float:
        """Get the current profit threshold."""
        return self._min_profit_threshold

    def set_min_profit_threshold(self, threshold: float) -> None:
        """Update minimum profit threshold."""
        self._min_profit_threshold = threshold

    def set_fees(self, fees: Mapping[str, float]) -> None:
        """Replace the fee schedule."""
        self._fees = _as_schedule(fees)

    def reset_stats(self) -> None:
        """Reset detection statistics."""
        self._stats = DetectionStats()
