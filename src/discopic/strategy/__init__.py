"""Strategy module for opportunity detection and analytics."""

from discopic.strategy.analytics import (
    InvalidInvestmentError,
    filter_by_min_profit,
    filter_by_pair,
    is_fresh,
    project_profit,
    sort_by,
    summary_stats,
)
from discopic.strategy.calculator import ArbitrageCalculator
from discopic.strategy.detector import OpportunityDetector, detect_opportunities, group_by_pair


__all__ = [
    "ArbitrageCalculator",
    "InvalidInvestmentError",
    "OpportunityDetector",
    "detect_opportunities",
    "filter_by_min_profit",
    "filter_by_pair",
    "group_by_pair",
    "is_fresh",
    "project_profit",
    "sort_by",
    "summary_stats",
]
