"""
Pydantic models for CoinAPI responses.

These models provide type-safe parsing of market-data responses
with automatic validation.
"""

from pydantic import BaseModel, Field


class BookLevel(BaseModel):
    """Single price level of an order book side."""

    price: float = Field(gt=0)
    size: float = Field(default=0.0, ge=0)


class OrderbookSnapshot(BaseModel):
    """Current order book response (``/orderbooks/{symbol_id}/current``)."""

    symbol_id: str = ""
    time_exchange: str | None = None
    time_coinapi: str | None = None
    asks: list[BookLevel] = Field(default_factory=list)
    bids: list[BookLevel] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @property
    def best_ask(self) -> BookLevel | None:
        """Lowest ask level, or None for an empty side."""
        return self.asks[0] if self.asks else None

    @property
    def best_bid(self) -> BookLevel | None:
        """Highest bid level, or None for an empty side."""
        return self.bids[0] if self.bids else None

    @property
    def is_two_sided(self) -> bool:
        """Check that both a best ask and a best bid are present."""
        return self.best_ask is not None and self.best_bid is not None


class ExchangeRate(BaseModel):
    """Aggregated spot rate response (``/exchangerate/{base}/{quote}``)."""

    time: str | None = None
    asset_id_base: str
    asset_id_quote: str
    rate: float

    model_config = {"extra": "ignore"}

