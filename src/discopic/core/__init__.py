"""Core module containing the shared type definitions."""

from discopic.core.types import (
    FeeSchedule,
    Opportunity,
    ProfitClass,
    ProfitProjection,
    Quote,
    QuoteSource,
    SortKey,
    SummaryStats,
)


__all__ = [
    "FeeSchedule",
    "Opportunity",
    "ProfitClass",
    "ProfitProjection",
    "Quote",
    "QuoteSource",
    "SortKey",
    "SummaryStats",
]
