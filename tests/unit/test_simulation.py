"""
Unit tests for demo market data.

Tests the fixed demo batch and the random-walk simulator.
"""

import pytest

from discopic.config.settings import DashboardConfig
from discopic.core.types import FeeSchedule
from discopic.simulation.market import DEMO_BOOK, MarketSimulator, demo_quotes
from discopic.strategy.detector import detect_opportunities


class TestDemoQuotes:
    """Tests for the fixed demo batch."""

    def test_batch(self) -> None:
        quotes = demo_quotes(captured_at_ms=123)

        assert len(quotes) == len(DEMO_BOOK) == 12
        assert {q.pair for q in quotes} == {"BTC/USDT", "ETH/USDT", "BNB/USDT"}
        assert all(q.captured_at_ms == 123 for q in quotes)
        assert all(q.ask > q.bid for q in quotes)

    def test_default_fees(self) -> None:
        """Test default fees leave only the BNB BINANCE -> BITFINEX route."""
        fees = FeeSchedule(DashboardConfig().fees)

        assert detect_opportunities(demo_quotes(), fees, 0.5) == []

        opportunities = detect_opportunities(demo_quotes(), fees, 0.0)
        assert [(o.pair, o.buy_exchange, o.sell_exchange) for o in opportunities] == [
            ("BNB/USDT", "BINANCE", "BITFINEX")
        ]
        assert opportunities[0].net_profit_pct == pytest.approx(0.068, abs=0.001)

    def test_gross_spreads_visible_below_zero(self) -> None:
        fees = FeeSchedule(DashboardConfig().fees)

        opportunities = detect_opportunities(demo_quotes(), fees, -1.0)

        assert opportunities
        assert all(opp.gross_profit_pct > 0 for opp in opportunities)


class TestMarketSimulator:
    """Tests for MarketSimulator."""

    @pytest.mark.asyncio
    async def test_quotes_for_requested_books(self) -> None:
        simulator = MarketSimulator(seed=7)

        quotes = await simulator.get_all_quotes(["BTC/USDT"], ["BINANCE", "KRAKEN"])

        assert [(q.pair, q.exchange) for q in quotes] == [
            ("BTC/USDT", "BINANCE"),
            ("BTC/USDT", "KRAKEN"),
        ]
        assert all(q.ask > q.bid > 0 for q in quotes)
        assert simulator.steps == 1

    @pytest.mark.asyncio
    async def test_unknown_books_skipped(self) -> None:
        simulator = MarketSimulator(seed=7)

        quotes = await simulator.get_all_quotes(["DOGE/USDT", "ETH/USDT"], ["BINANCE", "OKX"])

        assert [(q.pair, q.exchange) for q in quotes] == [("ETH/USDT", "BINANCE")]

    @pytest.mark.asyncio
    async def test_seed_reproducible(self) -> None:
        first = await MarketSimulator(seed=42).get_all_quotes(["BTC/USDT"], ["BINANCE"])
        second = await MarketSimulator(seed=42).get_all_quotes(["BTC/USDT"], ["BINANCE"])

        assert first[0].ask == second[0].ask
        assert first[0].bid_volume == second[0].bid_volume

    @pytest.mark.asyncio
    async def test_prices_stay_near_base(self) -> None:
        simulator = MarketSimulator(seed=1)
        for _ in range(50):
            await simulator.get_all_quotes(["BTC/USDT"], ["BINANCE"])

        price = simulator.get_current_prices()[("BINANCE", "BTC/USDT")]
        assert 40000 < price < 44500
