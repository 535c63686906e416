"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from discopic.config.settings import DashboardConfig
from discopic.config.store import ConfigStore
from discopic.core.types import FeeSchedule, Quote
from discopic.strategy.calculator import ArbitrageCalculator
from tests.mocks import MockQuoteSource


NOW_MS = 1704067200000


# =============================================================================
# Quote Fixtures
# =============================================================================


@pytest.fixture
def make_quote() -> Callable[..., Quote]:
    """Factory for quotes with sensible defaults."""

    def _make(
        exchange: str,
        ask: float,
        bid: float,
        pair: str = "BTC/USDT",
        ask_volume: float = 1.0,
        bid_volume: float = 1.0,
        captured_at_ms: int = NOW_MS,
    ) -> Quote:
        return Quote(
            exchange=exchange,
            pair=pair,
            ask=ask,
            bid=bid,
            ask_volume=ask_volume,
            bid_volume=bid_volume,
            captured_at_ms=captured_at_ms,
        )

    return _make


@pytest.fixture
def quote_binance_btc(make_quote: Callable[..., Quote]) -> Quote:
    """BTC/USDT on BINANCE."""
    return make_quote("BINANCE", ask=42000.0, bid=41990.0, ask_volume=2.0, bid_volume=3.0)


@pytest.fixture
def quote_coinbase_btc(make_quote: Callable[..., Quote]) -> Quote:
    """BTC/USDT on COINBASE, bid above BINANCE's ask."""
    return make_quote("COINBASE", ask=42500.0, bid=42480.0, ask_volume=1.5, bid_volume=0.8)


@pytest.fixture
def two_exchange_quotes(quote_binance_btc: Quote, quote_coinbase_btc: Quote) -> list[Quote]:
    """One profitable direction (BINANCE -> COINBASE) before a 0.7% fee."""
    return [quote_binance_btc, quote_coinbase_btc]


@pytest.fixture
def market_quotes(make_quote: Callable[..., Quote]) -> list[Quote]:
    """Two pairs on three exchanges with several profitable routes."""
    return [
        make_quote("BINANCE", ask=42000.0, bid=41990.0),
        make_quote("COINBASE", ask=42600.0, bid=42580.0),
        make_quote("KRAKEN", ask=42300.0, bid=42290.0),
        make_quote("BINANCE", ask=2200.0, bid=2199.0, pair="ETH/USDT", ask_volume=10.0),
        make_quote("COINBASE", ask=2230.0, bid=2229.0, pair="ETH/USDT", bid_volume=4.0),
        make_quote("KRAKEN", ask=2250.0, bid=2249.0, pair="ETH/USDT"),
    ]


# =============================================================================
# Fee Fixtures
# =============================================================================


@pytest.fixture
def fees() -> dict[str, float]:
    """Fee percents for the exchanges used in tests."""
    return {"BINANCE": 0.1, "COINBASE": 0.6, "KRAKEN": 0.26}


@pytest.fixture
def fee_schedule(fees: dict[str, float]) -> FeeSchedule:
    """Fee schedule with the default 0.1% fallback."""
    return FeeSchedule(fees)


@pytest.fixture
def calculator(fees: dict[str, float]) -> ArbitrageCalculator:
    """Arbitrage calculator with test fees."""
    return ArbitrageCalculator(fees)


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Settings document location inside a temp dir."""
    return tmp_path / "discopic" / "discopic_config.json"


@pytest.fixture
def config_store(config_path: Path) -> ConfigStore:
    """Store over an empty temp location."""
    return ConfigStore(config_path)


@pytest.fixture
def configured_store(config_store: ConfigStore) -> ConfigStore:
    """Store holding a config with an API key and BTC/ETH pairs."""
    config_store.save(
        DashboardConfig(
            api_key="test-key",
            default_min_profit_pct=0.0,
            pairs=["BTC/USDT", "ETH/USDT"],
            exchanges=["BINANCE", "COINBASE", "KRAKEN"],
            fees={"BINANCE": 0.1, "COINBASE": 0.6, "KRAKEN": 0.26},
        )
    )
    return config_store


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_source(market_quotes: list[Quote]) -> MockQuoteSource:
    """Mock source serving the market quotes."""
    return MockQuoteSource(market_quotes)
