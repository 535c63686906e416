"""
Dashboard controller.

Owns the dashboard state (opportunities, filters, status) and coordinates
the quote source, the detector and the settings store. The web server and
the CLI are thin views over this class.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from discopic.config.constants import ALL_PAIRS, DEFAULT_PROJECTION_AMOUNT
from discopic.config.settings import DashboardConfig
from discopic.config.store import ConfigStore
from discopic.core.types import (
    FeeSchedule,
    Opportunity,
    ProfitProjection,
    Quote,
    QuoteSource,
    SortKey,
    SummaryStats,
)
from discopic.exchange.client import CoinAPIError
from discopic.simulation.market import demo_quotes
from discopic.strategy.analytics import (
    filter_by_min_profit,
    filter_by_pair,
    pair_options,
    project_profit,
    sort_by,
    summary_stats,
)
from discopic.strategy.detector import DetectionStats, OpportunityDetector
from discopic.telemetry.metrics import MetricsCollector
from discopic.utils.time import LatencyTimer, format_timestamp_ms, get_timestamp_ms


logger = logging.getLogger(__name__)

StateListener = Callable[["DashboardController"], Awaitable[None]]

# Status texts shown in the dashboard header
STATUS_READY = "Ready"
STATUS_FETCHING = "Fetching market data..."
STATUS_NO_DATA = "No data"
STATUS_ERROR = "Error"
STATUS_SETTINGS_SAVED = "Settings saved"

ERROR_NO_API_KEY = "Please configure your API key in settings."
ERROR_NO_DATA = "No market data available. Please check your configuration."
ERROR_SAVE_FAILED = "Failed to save settings."


@dataclass
class FilterState:
    """Current table filters."""

    pair: str = ALL_PAIRS
    min_profit_pct: float = 0.0
    sort: SortKey = SortKey.PROFIT


class DashboardController:
    """
    Dashboard orchestrator.

    Manages:
    - Refreshing quotes from the configured source
    - Demo mode on the built-in quote batch
    - Filtering and sorting of the table
    - Settings persistence
    - The auto-refresh timer
    """

    def __init__(
        self,
        store: ConfigStore,
        source: QuoteSource,
        metrics: MetricsCollector | None = None,
        requires_api_key: bool = True,
    ) -> None:
        """
        Initialize the controller.

        Args:
            store: Settings document store.
            source: Where quote batches come from.
            metrics: Metrics collector (a new one by default).
            requires_api_key: Whether ``refresh`` needs a configured key.
                False for simulated sources.
        """
        self._store = store
        self._source = source
        self._metrics = metrics or MetricsCollector()
        self._requires_api_key = requires_api_key

        self._config = store.load()
        self._filters = FilterState(min_profit_pct=self._config.default_min_profit_pct)
        self._detector = OpportunityDetector(
            FeeSchedule(self._config.fees), self._filters.min_profit_pct
        )

        # State
        self._opportunities: list[Opportunity] = []
        self._filtered: list[Opportunity] = []
        self._is_loading = False
        self._status = STATUS_READY
        self._error: str | None = None
        self._last_update_ms: int | None = None
        self._demo_mode = False

        self._auto_refresh_task: asyncio.Task[None] | None = None
        self._listeners: list[StateListener] = []

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: StateListener) -> None:
        """Register a coroutine called after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                await listener(self)
            except Exception as e:
                logger.error(f"State listener error: {e}")

    # =========================================================================
    # Data Loading
    # =========================================================================

    def _detect(self, quotes: Sequence[Quote]) -> list[Opportunity]:
        with LatencyTimer() as timer:
            self._detector.set_min_profit_threshold(self._filters.min_profit_pct)
            opportunities = self._detector.scan(quotes)
        self._metrics.record_latency("detect", timer.latency_ms)
        return opportunities

    async def refresh(self) -> bool:
        """
        Fetch a full quote batch and recompute opportunities.

        Returns:
            False if the refresh was skipped (already loading, or no API
            key configured), True otherwise, including on fetch errors.
        """
        if self._is_loading:
            logger.debug("Refresh already in progress, skipping")
            return False

        if self._requires_api_key and not self._config.has_api_key:
            self._error = ERROR_NO_API_KEY
            await self._notify()
            return False

        self._is_loading = True
        self._status = STATUS_FETCHING
        self._error = None
        await self._notify()

        config = self._config
        timer = LatencyTimer()
        try:
            with timer:
                quotes = await self._source.get_all_quotes(
                    config.pairs,
                    config.exchanges,
                    config.api_key.get_secret_value(),
                )

            if not quotes:
                self._error = ERROR_NO_DATA
                self._status = STATUS_NO_DATA
                self._opportunities = []
                self._filtered = []
                self._metrics.record_refresh(0, 0)
            else:
                self._opportunities = self._detect(quotes)
                self._demo_mode = False
                self.apply_filters()
                self._last_update_ms = get_timestamp_ms()
                self._status = f"Found {len(self._opportunities)} opportunities"

                best = self._opportunities[0].net_profit_pct if self._opportunities else None
                self._metrics.record_refresh(len(quotes), len(self._opportunities), best)

            logger.info(
                f"Refresh: {len(quotes)} quotes, "
                f"{len(self._opportunities)} opportunities in {timer.latency_ms:.0f}ms"
            )

        except CoinAPIError as e:
            logger.error(f"Error refreshing data: {e}")
            self._error = str(e)
            self._status = STATUS_ERROR
            self._metrics.record_refresh(0, 0, success=False)

        finally:
            self._metrics.record_latency("refresh", timer.latency_ms)
            self._is_loading = False

        await self._notify()
        return True

    def load_demo_data(self) -> list[Opportunity]:
        """
        Run the detector on the built-in demo batch.

        Works without an API key.

        Returns:
            The filtered table rows.
        """
        self._error = None
        self._opportunities = self._detect(demo_quotes())
        self._demo_mode = True
        self.apply_filters()
        self._last_update_ms = get_timestamp_ms()
        self._status = f"Demo Mode - Found {len(self._opportunities)} opportunities"

        logger.info(self._status)
        return self._filtered

    # =========================================================================
    # Table
    # =========================================================================

    def apply_filters(
        self,
        pair: str | None = None,
        min_profit: float | str | None = None,
        sort: SortKey | str | None = None,
    ) -> list[Opportunity]:
        """
        Update the given filters and recompute the table rows.

        Arguments left as None keep their current value. An unknown sort
        key or a min profit that is not a finite number keeps the current
        value.
        """
        if pair is not None:
            self._filters.pair = str(pair) or ALL_PAIRS
        if min_profit is not None:
            try:
                threshold = float(min_profit)
            except (TypeError, ValueError):
                threshold = math.nan
            if math.isfinite(threshold):
                self._filters.min_profit_pct = threshold
            else:
                logger.warning(
                    f"Invalid min profit {min_profit!r}, "
                    f"keeping {self._filters.min_profit_pct:.2f}"
                )
        if sort is not None:
            try:
                self._filters.sort = SortKey(sort)
            except ValueError:
                logger.warning(f"Unknown sort key {sort!r}, keeping {self._filters.sort.value}")

        filtered = filter_by_pair(self._opportunities, self._filters.pair)
        filtered = filter_by_min_profit(filtered, self._filters.min_profit_pct)
        self._filtered = sort_by(filtered, self._filters.sort)
        return self._filtered

    def view_details(
        self,
        pair: str,
        buy_exchange: str,
        sell_exchange: str,
        investment: float = DEFAULT_PROJECTION_AMOUNT,
    ) -> tuple[Opportunity, ProfitProjection] | None:
        """
        Look up a table row and project it with a fixed investment.

        Returns:
            (opportunity, projection), or None if the row is not shown.

        Raises:
            InvalidInvestmentError: If ``investment`` is not positive.
        """
        for opp in self._filtered:
            if (
                opp.pair == pair
                and opp.buy_exchange == buy_exchange
                and opp.sell_exchange == sell_exchange
            ):
                return opp, project_profit(opp, investment)
        return None

    def pair_options(self) -> list[str]:
        """Pairs for the filter control: configured pairs, then any others seen."""
        options = list(self._config.pairs)
        for pair in pair_options(self._opportunities):
            if pair not in options:
                options.append(pair)
        return options

    def summary(self) -> SummaryStats:
        """Aggregate figures for the current table rows."""
        return summary_stats(self._filtered)

    # =========================================================================
    # Settings
    # =========================================================================

    def save_settings(self, config: DashboardConfig) -> bool:
        """
        Persist new settings and apply them.

        Resets the min-profit filter to the new default and restarts or
        stops auto-refresh to match.

        Returns:
            True on success; False (with the error set) if saving failed.
        """
        if not self._store.save(config):
            self._error = ERROR_SAVE_FAILED
            return False

        self._config = config
        self._detector.set_fees(FeeSchedule(config.fees))
        self._filters.min_profit_pct = config.default_min_profit_pct
        self._error = None
        self._status = STATUS_SETTINGS_SAVED
        self.apply_filters()

        if config.auto_refresh:
            self.start_auto_refresh()
        else:
            self.stop_auto_refresh()

        return True

    @property
    def config(self) -> DashboardConfig:
        """Current settings."""
        return self._config

    # =========================================================================
    # Auto-Refresh
    # =========================================================================

    async def _auto_refresh_loop(self, interval_seconds: int) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Auto-refresh error: {e}")
            await asyncio.sleep(interval_seconds)

    def start_auto_refresh(self) -> None:
        """
        Refresh now and then every ``refresh_interval_seconds``.

        Replaces any running timer. Must be called from a running loop.
        """
        self.stop_auto_refresh()
        interval = self._config.refresh_interval_seconds
        self._auto_refresh_task = asyncio.create_task(self._auto_refresh_loop(interval))
        logger.info(f"Auto-refresh started (every {interval}s)")

    def stop_auto_refresh(self) -> None:
        """Cancel the timer if one is running."""
        if self._auto_refresh_task is not None:
            self._auto_refresh_task.cancel()
            self._auto_refresh_task = None
            logger.info("Auto-refresh stopped")

    def toggle_auto_refresh(self, enabled: bool) -> None:
        """Start or stop auto-refresh."""
        if enabled:
            self.start_auto_refresh()
        else:
            self.stop_auto_refresh()

    @property
    def auto_refresh_running(self) -> bool:
        return self._auto_refresh_task is not None and not self._auto_refresh_task.done()

    async def shutdown(self) -> None:
        """Stop the timer and wait for it to finish."""
        task = self._auto_refresh_task
        self.stop_auto_refresh()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # =========================================================================
    # State Access
    # =========================================================================

    @property
    def opportunities(self) -> list[Opportunity]:
        """All opportunities from the last refresh."""
        return list(self._opportunities)

    @property
    def filtered(self) -> list[Opportunity]:
        """Current table rows."""
        return list(self._filtered)

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def status(self) -> str:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_update_ms(self) -> int | None:
        return self._last_update_ms

    @property
    def demo_mode(self) -> bool:
        return self._demo_mode

    @property
    def source(self) -> QuoteSource:
        return self._source

    @property
    def detection_stats(self) -> DetectionStats:
        """Totals over every scan, demo batches included."""
        return self._detector.stats

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics

    def snapshot(self) -> dict[str, Any]:
        """Status fields for the dashboard header."""
        return {
            "status": self._status,
            "error": self._error,
            "isLoading": self._is_loading,
            "demoMode": self._demo_mode,
            "lastUpdateMs": self._last_update_ms,
            "lastUpdate": (
                format_timestamp_ms(self._last_update_ms)
                if self._last_update_ms is not None
                else None
            ),
            "opportunityCount": len(self._filtered),
            "autoRefresh": self.auto_refresh_running,
            "hasApiKey": self._config.has_api_key,
            "filters": {
                "pair": self._filters.pair,
                "minProfit": self._filters.min_profit_pct,
                "sort": self._filters.sort.value,
            },
        }
