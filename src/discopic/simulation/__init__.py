"""Simulation module for demo mode without real API keys."""

from discopic.simulation.market import DEMO_BOOK, MarketSimulator, demo_quotes


__all__ = [
    "DEMO_BOOK",
    "MarketSimulator",
    "demo_quotes",
]
