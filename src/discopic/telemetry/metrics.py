"""
Metrics collection for the dashboard.

Tracks refresh latencies, counters and per-refresh results in memory.
"""

import time
from collections import deque
from dataclasses import asdict, dataclass


@dataclass
class LatencyStats:
    """Aggregated latency statistics in milliseconds."""

    min_ms: float = 0.0
    max_ms: float = 0.0
    avg_ms: float = 0.0
    p50_ms: float = 0.0
    p95_ms: float = 0.0
    count: int = 0


@dataclass
class RefreshStats:
    """Totals over every refresh since start (or last reset)."""

    refreshes: int = 0
    failures: int = 0
    quotes_fetched: int = 0
    opportunities_found: int = 0
    best_net_profit_pct: float = 0.0
    last_quote_count: int = 0
    last_opportunity_count: int = 0

    @property
    def success_rate(self) -> float:
        """Share of refreshes that completed without error."""
        return (self.refreshes - self.failures) / self.refreshes if self.refreshes > 0 else 0.0


class MetricsCollector:
    """
    Collects and aggregates dashboard metrics.

    Features:
    - Rolling window latency tracking
    - Named counters
    - Refresh result accumulation
    """

    def __init__(self, latency_window_size: int = 500) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep per latency metric.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[float]] = {}
        self._counters: dict[str, int] = {}
        self._refresh_stats = RefreshStats()
        self._start_time = time.time()

    def record_latency(self, name: str, latency_ms: float) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "fetch", "detect").
            latency_ms: Latency in milliseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_ms)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """Increment a named counter."""
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_refresh(
        self,
        quote_count: int,
        opportunity_count: int,
        best_net_profit_pct: float | None = None,
        success: bool = True,
    ) -> None:
        """
        Record the outcome of one refresh.

        Args:
            quote_count: Quotes in the fetched batch.
            opportunity_count: Opportunities detected from it.
            best_net_profit_pct: Net profit of the top opportunity, if any.
            success: False when the refresh raised.
        """
        stats = self._refresh_stats
        stats.refreshes += 1

        if not success:
            stats.failures += 1
            return

        stats.quotes_fetched += quote_count
        stats.opportunities_found += opportunity_count
        stats.last_quote_count = quote_count
        stats.last_opportunity_count = opportunity_count

        if best_net_profit_pct is not None and best_net_profit_pct > stats.best_net_profit_pct:
            stats.best_net_profit_pct = best_net_profit_pct

    def get_latency_stats(self, name: str) -> LatencyStats:
        """Get latency statistics for a metric."""
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        ordered = sorted(samples)
        n = len(ordered)

        return LatencyStats(
            min_ms=ordered[0],
            max_ms=ordered[-1],
            avg_ms=sum(ordered) / n,
            p50_ms=ordered[n // 2],
            p95_ms=ordered[min(int(n * 0.95), n - 1)],
            count=n,
        )

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        """Get latency stats for all metrics."""
        return {name: self.get_latency_stats(name) for name in self._latencies}

    @property
    def refresh_stats(self) -> RefreshStats:
        """Get refresh statistics."""
        return self._refresh_stats

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, object]:
        """Export all metrics as a JSON-friendly dict."""
        refresh = asdict(self._refresh_stats)
        refresh["success_rate"] = self._refresh_stats.success_rate

        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "latencies": {
                name: asdict(stats) for name, stats in self.get_all_latency_stats().items()
            },
            "refresh": refresh,
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._refresh_stats = RefreshStats()
        self._start_time = time.time()
