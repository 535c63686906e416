"""
Stateless helpers over detected opportunities.

Filtering, re-sorting, aggregate statistics, investment projection and
staleness checks. Every function returns new objects and leaves its
input untouched.
"""

import math
from collections.abc import Iterable, Sequence

from discopic.config.constants import ALL_PAIRS, OPPORTUNITY_MAX_AGE_MS
from discopic.core.types import Opportunity, ProfitProjection, SortKey, SummaryStats
from discopic.utils.math import apply_fee, mean


class InvalidInvestmentError(ValueError):
    """Raised when a projection is requested for a non-positive amount."""


def filter_by_pair(opportunities: Iterable[Opportunity], pair: str | None) -> list[Opportunity]:
    """
    Keep opportunities for one trading pair.

    An empty/None pair or the ``"all"`` sentinel keeps everything.
    """
    if not pair or pair == ALL_PAIRS:
        return list(opportunities)
    return [opp for opp in opportunities if opp.pair == pair]


def filter_by_min_profit(
    opportunities: Iterable[Opportunity],
    min_profit_pct: float,
) -> list[Opportunity]:
    """Keep opportunities whose net profit is at least ``min_profit_pct``."""
    return [opp for opp in opportunities if opp.net_profit_pct >= min_profit_pct]


def sort_by(opportunities: Iterable[Opportunity], key: SortKey | str) -> list[Opportunity]:
    """
    Re-sort opportunities.

    ``profit`` and ``spread`` sort descending, ``pair`` ascending.
    An unrecognized key returns the opportunities in their current order.
    """
    result = list(opportunities)

    try:
        sort_key = SortKey(key)
    except ValueError:
        return result

    if sort_key is SortKey.PROFIT:
        result.sort(key=lambda x: x.net_profit_pct, reverse=True)
    elif sort_key is SortKey.PAIR:
        result.sort(key=lambda x: x.pair)
    elif sort_key is SortKey.SPREAD:
        result.sort(key=lambda x: x.spread, reverse=True)

    return result


def summary_stats(opportunities: Sequence[Opportunity]) -> SummaryStats:
    """
    Aggregate count, average/maximum net profit and total volume.

    All figures are zero for an empty input.
    """
    if not opportunities:
        return SummaryStats()

    profits = [opp.net_profit_pct for opp in opportunities]

    return SummaryStats(
        count=len(opportunities),
        avg_net_profit_pct=mean(profits),
        max_net_profit_pct=max(profits),
        total_tradeable_volume=sum(opp.tradeable_volume for opp in opportunities),
    )


def project_profit(opportunity: Opportunity, investment_amount: float) -> ProfitProjection:
    """
    Simulate running an opportunity with a fixed investment.

    The investment (quote currency) buys base currency at the buy price,
    the buy fee is taken in base currency, the remainder is sold at the
    sell price and the sell fee is taken from the proceeds.

    Args:
        opportunity: Opportunity to project.
        investment_amount: Amount invested, in the pair's quote currency.

    Returns:
        Every intermediate quantity of the round trip.

    Raises:
        InvalidInvestmentError: If the amount is not a positive finite number.
    """
    if not math.isfinite(investment_amount) or investment_amount <= 0:
        raise InvalidInvestmentError(
            f"Investment amount must be a positive number, got {investment_amount!r}"
        )

    buy_amount = investment_amount / opportunity.buy_price
    net_buy_amount, buy_fee_amount = apply_fee(buy_amount, opportunity.buy_fee_pct)

    sell_value = net_buy_amount * opportunity.sell_price
    net_sell_value, sell_fee_amount = apply_fee(sell_value, opportunity.sell_fee_pct)

    profit = net_sell_value - investment_amount

    return ProfitProjection(
        investment_amount=investment_amount,
        buy_amount=buy_amount,
        buy_fee_amount=buy_fee_amount,
        net_buy_amount=net_buy_amount,
        sell_value=sell_value,
        sell_fee_amount=sell_fee_amount,
        net_sell_value=net_sell_value,
        profit=profit,
        profit_pct=profit / investment_amount * 100.0,
    )


def is_fresh(
    opportunity: Opportunity,
    now_ms: int,
    max_age_ms: int = OPPORTUNITY_MAX_AGE_MS,
) -> bool:
    """
    Check whether an opportunity is still worth showing.

    True when it is younger than ``max_age_ms`` and still nets a profit.
    Advisory only; nothing is removed from any list.
    """
    return now_ms - opportunity.detected_at_ms < max_age_ms and opportunity.net_profit_pct > 0


def pair_options(opportunities: Iterable[Opportunity]) -> list[str]:
    """Distinct pairs in first-seen order, for filter controls."""
    return list(dict.fromkeys(opp.pair for opp in opportunities))
