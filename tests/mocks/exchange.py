"""
Mock quote source for testing.

Stands in for the CoinAPI client: returns scripted quote batches without
network calls and records how it was called.
"""

from collections.abc import Sequence
from typing import Any

from discopic.core.types import Quote


class MockQuoteSource:
    """
    Mock quote source for testing.

    Returns ``quotes`` filtered to the requested pairs and exchanges,
    or raises ``error`` when one is set.
    """

    def __init__(
        self,
        quotes: Sequence[Quote] | None = None,
        error: Exception | None = None,
    ) -> None:
        """
        Initialize mock source.

        Args:
            quotes: Quotes available to every call.
            error: Exception to raise instead of returning quotes.
        """
        self.quotes = list(quotes or [])
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def get_all_quotes(
        self,
        pairs: Sequence[str],
        exchanges: Sequence[str],
        api_key: str = "",
    ) -> list[Quote]:
        """Mock batch fetch."""
        self.calls.append(
            {"pairs": list(pairs), "exchanges": list(exchanges), "api_key": api_key}
        )

        if self.error is not None:
            raise self.error

        return [
            quote
            for quote in self.quotes
            if quote.pair in pairs and quote.exchange in exchanges
        ]

    @property
    def call_count(self) -> int:
        return len(self.calls)
