"""
Unit tests for opportunity detection.

Tests the invariants of detect_opportunities and the stateful
OpportunityDetector wrapper.
"""

from collections.abc import Callable

import pytest

from discopic.core.types import FeeSchedule, Quote
from discopic.strategy.detector import OpportunityDetector, detect_opportunities, group_by_pair


class TestGroupByPair:
    """Tests for group_by_pair."""

    def test_groups_in_first_seen_order(self, market_quotes: list[Quote]) -> None:
        """Test pairs and quotes keep input order."""
        grouped = group_by_pair(market_quotes)

        assert list(grouped) == ["BTC/USDT", "ETH/USDT"]
        assert [q.exchange for q in grouped["ETH/USDT"]] == ["BINANCE", "COINBASE", "KRAKEN"]

    def test_empty(self) -> None:
        """Test empty input gives no groups."""
        assert group_by_pair([]) == {}


class TestDetectOpportunities:
    """Tests for detect_opportunities."""

    def test_two_exchange_scenario(
        self,
        two_exchange_quotes: list[Quote],
        fees: dict[str, float],
    ) -> None:
        """Test the BINANCE/COINBASE example yields exactly one opportunity."""
        opportunities = detect_opportunities(two_exchange_quotes, fees, 0.0, now_ms=1)

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.buy_exchange == "BINANCE"
        assert opp.buy_price == 42000.0
        assert opp.sell_exchange == "COINBASE"
        assert opp.sell_price == 42480.0
        assert opp.gross_profit_pct == pytest.approx(1.1429, abs=1e-4)
        assert opp.total_fee_pct == pytest.approx(0.7)
        assert opp.net_profit_pct == pytest.approx(0.4429, abs=1e-4)
        assert opp.detected_at_ms == 1

    def test_two_exchange_scenario_above_threshold(
        self,
        two_exchange_quotes: list[Quote],
        fees: dict[str, float],
    ) -> None:
        """Test the same quotes yield nothing at a 0.5% threshold."""
        assert detect_opportunities(two_exchange_quotes, fees, 0.5) == []

    def test_identical_quotes_yield_nothing(
        self,
        make_quote: Callable[..., Quote],
        fees: dict[str, float],
    ) -> None:
        """Test three exchanges with identical prices have no spread to trade."""
        quotes = [
            make_quote(exchange, ask=100.0, bid=99.5) for exchange in ("BINANCE", "COINBASE", "KRAKEN")
        ]

        assert detect_opportunities(quotes, fees, -100.0) == []

    def test_empty_and_single_quote(self, quote_binance_btc: Quote, fees: dict[str, float]) -> None:
        """Test fewer than two quotes per pair yields nothing."""
        assert detect_opportunities([], fees, -100.0) == []
        assert detect_opportunities([quote_binance_btc], fees, -100.0) == []

    def test_pairs_never_mix(
        self,
        make_quote: Callable[..., Quote],
        fees: dict[str, float],
    ) -> None:
        """Test quotes for different pairs are never combined."""
        quotes = [
            make_quote("BINANCE", ask=100.0, bid=99.0, pair="AAA/USDT"),
            make_quote("KRAKEN", ask=300.0, bid=299.0, pair="BBB/USDT"),
        ]

        assert detect_opportunities(quotes, fees, -100.0) == []

    def test_invariants_hold(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test every opportunity is a strict, fee-consistent, cross-exchange route."""
        schedule = FeeSchedule(fees)
        opportunities = detect_opportunities(market_quotes, fees, -100.0)

        assert opportunities
        for opp in opportunities:
            assert opp.sell_price > opp.buy_price
            assert opp.buy_exchange != opp.sell_exchange
            assert opp.spread == pytest.approx(opp.sell_price - opp.buy_price)
            assert opp.buy_fee_pct == schedule.fee_for(opp.buy_exchange)
            assert opp.sell_fee_pct == schedule.fee_for(opp.sell_exchange)
            assert opp.net_profit_pct == pytest.approx(opp.gross_profit_pct - opp.total_fee_pct)

    def test_ranked_by_net_profit(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test results are sorted by net profit, highest first."""
        opportunities = detect_opportunities(market_quotes, fees, 0.0)

        routes = [opp.route for opp in opportunities]
        assert routes == [
            "ETH/USDT BINANCE->KRAKEN",
            "BTC/USDT BINANCE->COINBASE",
            "ETH/USDT BINANCE->COINBASE",
            "BTC/USDT BINANCE->KRAKEN",
        ]
        profits = [opp.net_profit_pct for opp in opportunities]
        assert profits == sorted(profits, reverse=True)
        assert {opp.base_asset for opp in opportunities} == {"BTC", "ETH"}

    def test_threshold_is_inclusive(
        self,
        make_quote: Callable[..., Quote],
    ) -> None:
        """Test an opportunity exactly at the threshold is kept."""
        quotes = [
            make_quote("A", ask=100.0, bid=99.0),
            make_quote("B", ask=103.0, bid=102.0),
        ]
        fees = {"A": 0.5, "B": 0.5}

        opportunities = detect_opportunities(quotes, fees, 1.0)

        assert len(opportunities) == 1
        assert opportunities[0].net_profit_pct == pytest.approx(1.0)

    def test_threshold_is_monotonic(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test raising the threshold only removes opportunities."""
        previous = None
        for threshold in (-5.0, -0.5, 0.0, 0.5, 1.0, 2.0, 5.0):
            routes = {opp.route for opp in detect_opportunities(market_quotes, fees, threshold)}
            if previous is not None:
                assert routes <= previous
            previous = routes

    def test_missing_fee_falls_back(self, make_quote: Callable[..., Quote]) -> None:
        """Test exchanges absent from the fee map pay 0.1%."""
        quotes = [
            make_quote("NEWEX", ask=100.0, bid=99.0),
            make_quote("OTHEREX", ask=102.0, bid=101.0),
        ]

        opportunities = detect_opportunities(quotes, {}, 0.0)

        assert len(opportunities) == 1
        assert opportunities[0].total_fee_pct == pytest.approx(0.2)
        assert opportunities[0].net_profit_pct == pytest.approx(0.8)

    def test_same_exchange_never_paired(self, make_quote: Callable[..., Quote]) -> None:
        """Test two quotes from one exchange are never a route."""
        quotes = [
            make_quote("BINANCE", ask=100.0, bid=99.0),
            make_quote("BINANCE", ask=110.0, bid=109.0),
        ]

        assert detect_opportunities(quotes, {}, -100.0) == []

    def test_duplicates_not_merged(self, make_quote: Callable[..., Quote]) -> None:
        """Test duplicate quotes each produce their own opportunity."""
        cheap = make_quote("BINANCE", ask=100.0, bid=99.0)
        quotes = [cheap, cheap, make_quote("KRAKEN", ask=105.0, bid=104.0)]

        opportunities = detect_opportunities(quotes, {}, 0.0)

        assert len(opportunities) == 2
        assert opportunities[0].same_content(opportunities[1])

    def test_idempotent(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test the same input gives the same output, timestamps aside."""
        first = detect_opportunities(market_quotes, fees, 0.0, now_ms=1)
        second = detect_opportunities(market_quotes, fees, 0.0, now_ms=2)

        assert len(first) == len(second)
        assert all(a.same_content(b) for a, b in zip(first, second))

    def test_input_not_mutated(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test inputs are left untouched."""
        quotes_before = list(market_quotes)
        fees_before = dict(fees)

        detect_opportunities(market_quotes, fees, 0.0)

        assert market_quotes == quotes_before
        assert fees == fees_before


class TestOpportunityDetector:
    """Tests for the stateful detector."""

    def test_scan_updates_stats(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test scan counts quotes and opportunities."""
        detector = OpportunityDetector(fees, min_profit_threshold=0.0)

        opportunities = detector.scan(market_quotes, now_ms=5)

        assert len(opportunities) == 4
        assert detector.stats.total_scans == 1
        assert detector.stats.quotes_scanned == 6
        assert detector.stats.opportunities_found == 4
        assert detector.stats.best_net_profit_pct == pytest.approx(opportunities[0].net_profit_pct)

    def test_threshold_update(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test threshold changes apply to the next scan."""
        detector = OpportunityDetector(fees, min_profit_threshold=0.0)
        detector.set_min_profit_threshold(1.0)

        assert detector.min_profit_threshold == 1.0
        assert len(detector.scan(market_quotes)) == 1

    def test_best_opportunity(self, market_quotes: list[Quote], fees: dict[str, float]) -> None:
        """Test best opportunity is the top-ranked one."""
        detector = OpportunityDetector(fees, min_profit_threshold=0.0)

        best = detector.get_best_opportunity(market_quotes)

        assert best is not None
        assert best.route == "ETH/USDT BINANCE->KRAKEN"

    def test_best_opportunity_none(self, two_exchange_quotes: list[Quote]) -> None:
        """Test None when nothing qualifies."""
        detector = OpportunityDetector({"BINANCE": 0.1, "COINBASE": 0.6}, min_profit_threshold=0.5)

        assert detector.get_best_opportunity(two_exchange_quotes) is None

    def test_set_fees_and_reset(self, two_exchange_quotes: list[Quote]) -> None:
        """Test replacing fees changes results and stats can be reset."""
        detector = OpportunityDetector({"BINANCE": 0.1, "COINBASE": 0.6}, min_profit_threshold=0.5)
        assert detector.scan(two_exchange_quotes) == []

        detector.set_fees({"BINANCE": 0.0, "COINBASE": 0.0})
        assert len(detector.scan(two_exchange_quotes)) == 1

        detector.reset_stats()
        assert detector.stats.total_scans == 0
