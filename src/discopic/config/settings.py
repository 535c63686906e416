"""
Application settings with environment variable support.

Two layers of configuration:

* ``Settings`` - process-level options (where the settings document lives,
  server address, API endpoint, rate limits) loaded by Pydantic Settings
  from ``DISCOPIC_*`` environment variables or a ``.env`` file.
* ``DashboardConfig`` - the user-editable settings document (API key, fee
  schedule, watch list, refresh behaviour). Validated whenever it is loaded
  or saved so no read site has to apply its own defaults.
"""

import math
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from discopic.config.constants import (
    COINAPI_REST_URL,
    CONFIG_FILE_NAME,
    DAILY_REQUEST_QUOTA,
    DEFAULT_EXCHANGES,
    DEFAULT_FEES,
    DEFAULT_MIN_PROFIT_PCT,
    DEFAULT_PAIRS,
    DEFAULT_REFRESH_INTERVAL_SECONDS,
    MIN_REFRESH_INTERVAL_SECONDS,
    PAIR_REQUEST_DELAY_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    REQUESTS_PER_SECOND,
    RESPONSE_CACHE_TTL_MS,
)


def _default_config_path() -> Path:
    return Path.home() / ".discopic" / CONFIG_FILE_NAME


class Settings(BaseSettings):
    """
    Process settings loaded from environment variables.

    All settings can be overridden via ``DISCOPIC_<NAME>`` variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="DISCOPIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Storage
    # =========================================================================

    config_path: Path = Field(
        default_factory=_default_config_path,
        description="Location of the JSON settings document",
    )

    # =========================================================================
    # Dashboard Server
    # =========================================================================

    host: str = Field(default="127.0.0.1", description="Dashboard bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Dashboard port")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: Path | None = Field(default=None, description="Optional log file")

    # =========================================================================
    # Market Data API
    # =========================================================================

    coinapi_url: str = Field(
        default=COINAPI_REST_URL,
        description="CoinAPI REST base URL",
    )

    cache_ttl_ms: int = Field(
        default=RESPONSE_CACHE_TTL_MS,
        ge=0,
        le=300_000,
        description="How long a response is reused (milliseconds)",
    )

    pair_delay_seconds: float = Field(
        default=PAIR_REQUEST_DELAY_SECONDS,
        ge=0.0,
        le=10.0,
        description="Pause between pairs during a refresh",
    )

    requests_per_second: int = Field(
        default=REQUESTS_PER_SECOND,
        ge=1,
        le=100,
        description="Burst limit for API requests",
    )

    daily_request_quota: int = Field(
        default=DAILY_REQUEST_QUOTA,
        ge=1,
        description="Requests allowed per UTC day",
    )

    request_timeout_seconds: float = Field(
        default=REQUEST_TIMEOUT_SECONDS,
        gt=0.0,
        le=120.0,
        description="Total timeout for a single HTTP request",
    )

    simulate: bool = Field(
        default=False,
        description="Use simulated random-walk quotes instead of CoinAPI",
    )


class DashboardConfig(BaseModel):
    """
    User settings document.

    Serialized with the camelCase keys the settings file has always used
    (``apiKey``, ``refreshInterval``, ``defaultMinProfit`` ...).
    """

    model_config = {"populate_by_name": True, "validate_assignment": True}

    api_key: SecretStr = Field(
        default=SecretStr(""),
        alias="apiKey",
        description="CoinAPI key",
    )

    refresh_interval_seconds: int = Field(
        default=DEFAULT_REFRESH_INTERVAL_SECONDS,
        ge=MIN_REFRESH_INTERVAL_SECONDS,
        le=3600,
        alias="refreshInterval",
        description="Seconds between automatic refreshes",
    )

    default_min_profit_pct: float = Field(
        default=DEFAULT_MIN_PROFIT_PCT,
        ge=-100.0,
        le=100.0,
        alias="defaultMinProfit",
        description="Initial value of the minimum net profit filter (percent)",
    )

    auto_refresh: bool = Field(
        default=False,
        alias="autoRefresh",
        description="Refresh on a timer",
    )

    fees: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_FEES),
        description="Fee percent per exchange",
    )

    pairs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PAIRS),
        description="Trading pairs to monitor, BASE/QUOTE",
    )

    exchanges: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCHANGES),
        description="Exchange identifiers to poll",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("pairs", mode="after")
    @classmethod
    def validate_pairs(cls, v: list[str]) -> list[str]:
        """Normalize pairs to upper-case BASE/QUOTE and require at least one."""
        normalized: list[str] = []
        for pair in v:
            base, sep, quote = pair.strip().upper().partition("/")
            if not sep or not base.isalnum() or not quote.isalnum():
                raise ValueError(f"Invalid trading pair {pair!r}, expected BASE/QUOTE")
            canonical = f"{base}/{quote}"
            if canonical not in normalized:
                normalized.append(canonical)

        if not normalized:
            raise ValueError("Please select at least one trading pair.")
        return normalized

    @field_validator("exchanges", mode="after")
    @classmethod
    def validate_exchanges(cls, v: list[str]) -> list[str]:
        """Exchange ids are upper-case tokens."""
        normalized: list[str] = []
        for exchange in v:
            exchange_id = exchange.strip().upper()
            if not exchange_id:
                raise ValueError("Exchange identifier cannot be empty")
            if exchange_id not in normalized:
                normalized.append(exchange_id)

        if not normalized:
            raise ValueError("At least one exchange is required")
        return normalized

    @field_validator("fees", mode="after")
    @classmethod
    def validate_fees(cls, v: dict[str, float]) -> dict[str, float]:
        """Fees are finite, non-negative percentages."""
        fees: dict[str, float] = {}
        for exchange, fee in v.items():
            if not math.isfinite(fee) or fee < 0:
                raise ValueError(f"Fee for {exchange} must be a non-negative number")
            fees[exchange.strip().upper()] = fee
        return fees

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def has_api_key(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.api_key.get_secret_value().strip())

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage, with the API key in clear text."""
        document = self.model_dump(by_alias=True)
        document["apiKey"] = self.api_key.get_secret_value()
        return document

    def to_public_document(self) -> dict[str, Any]:
        """Serialize for display; the API key is reduced to a presence flag."""
        document = self.model_dump(by_alias=True, exclude={"api_key"})
        document["hasApiKey"] = self.has_api_key
        return document


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
