"""Mock implementations for testing."""

from tests.mocks.exchange import MockQuoteSource
from tests.mocks.http import MockResponse, MockSession


__all__ = [
    "MockQuoteSource",
    "MockResponse",
    "MockSession",
]
