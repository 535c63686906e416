"""Configuration module for the spread monitor."""

from discopic.config.constants import (
    COINAPI_REST_URL,
    DEFAULT_FEE_PCT,
    DEFAULT_MIN_PROFIT_PCT,
    OPPORTUNITY_MAX_AGE_MS,
    RESPONSE_CACHE_TTL_MS,
)
from discopic.config.settings import DashboardConfig, Settings, get_settings
from discopic.config.store import ConfigStore


__all__ = [
    "ConfigStore",
    "DashboardConfig",
    "Settings",
    "get_settings",
    "COINAPI_REST_URL",
    "DEFAULT_FEE_PCT",
    "DEFAULT_MIN_PROFIT_PCT",
    "OPPORTUNITY_MAX_AGE_MS",
    "RESPONSE_CACHE_TTL_MS",
]
