"""
Fee-adjusted spread calculation.

Evaluates one directed leg pair: buy on one exchange at its ask,
sell on another at its bid, both legs charged their exchange's fee.
"""

from collections.abc import Mapping

from discopic.config.constants import DEFAULT_FEE_PCT
from discopic.core.types import FeeSchedule, Opportunity, Quote
from discopic.utils.math import pct_change


class ArbitrageCalculator:
    """
    Calculates net profit for a buy/sell quote combination.

    Fees are percentages added across both legs and subtracted from the
    gross percentage spread; no compounding, no slippage.
    """

    __slots__ = ("_fees",)

    def __init__(
        self,
        fees: Mapping[str, float] | None = None,
        default_fee_pct: float = DEFAULT_FEE_PCT,
    ) -> None:
        """
        Initialize calculator.

        Args:
            fees: Exchange -> fee percent (e.g., 0.1 = 0.1%).
            default_fee_pct: Fee for exchanges missing from ``fees``.
        """
        if isinstance(fees, FeeSchedule):
            self._fees = fees
        else:
            self._fees = FeeSchedule(fees, default=default_fee_pct)

    def calculate_opportunity(
        self,
        buy_quote: Quote,
        sell_quote: Quote,
        detected_at_ms: int,
    ) -> Opportunity | None:
        """
        Evaluate buying on ``buy_quote``'s exchange and selling on ``sell_quote``'s.

        Args:
            buy_quote: Quote whose ask is paid.
            sell_quote: Quote whose bid is received.
            detected_at_ms: Timestamp stamped on the opportunity.

        Returns:
            Opportunity if the sell price is strictly above the buy price,
            None otherwise. No profit threshold is applied here.
        """
        buy_price = buy_quote.ask
        sell_price = sell_quote.bid

        if sell_price <= buy_price:
            return None

        buy_fee = self._fees.fee_for(buy_quote.exchange)
        sell_fee = self._fees.fee_for(sell_quote.exchange)
        total_fee = buy_fee + sell_fee

        gross_profit_pct = pct_change(buy_price, sell_price)
        net_profit_pct = gross_profit_pct - total_fee

        return Opportunity(
            pair=buy_quote.pair,
            buy_exchange=buy_quote.exchange,
            buy_price=buy_price,
            sell_exchange=sell_quote.exchange,
            sell_price=sell_price,
            spread=sell_price - buy_price,
            gross_profit_pct=gross_profit_pct,
            net_profit_pct=net_profit_pct,
            buy_fee_pct=buy_fee,
            sell_fee_pct=sell_fee,
            total_fee_pct=total_fee,
            tradeable_volume=min(buy_quote.ask_volume, sell_quote.bid_volume),
            detected_at_ms=detected_at_ms,
        )

    def break_even_spread_pct(self, buy_exchange: str, sell_exchange: str) -> float:
        """Gross spread (percent) needed to cover both legs' fees."""
        return self._fees.fee_for(buy_exchange) + self._fees.fee_for(sell_exchange)

    @property
    def fees(self) -> FeeSchedule:
        """Get the fee schedule."""
        return self._fees
