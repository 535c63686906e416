"""
Time utilities.

Market data and opportunities carry epoch-millisecond timestamps;
these helpers produce and format them.
"""

import time
from datetime import UTC, datetime


def get_timestamp_ms() -> int:
    """
    Get current timestamp in milliseconds.

    Returns:
        Current Unix timestamp in milliseconds.
    """
    return time.time_ns() // 1_000_000


def format_timestamp_ms(timestamp_ms: int, include_date: bool = False) -> str:
    """
    Format a millisecond timestamp for display.

    Args:
        timestamp_ms: Timestamp in milliseconds.
        include_date: Whether to include the date portion.

    Returns:
        Formatted UTC timestamp string.

    Example:
        >>> format_timestamp_ms(1704067200123)
        '00:00:00'
        >>> format_timestamp_ms(1704067200123, include_date=True)
        '2024-01-01 00:00:00'
    """
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)

    if include_date:
        return dt.strftime("%Y-%m-%d %H:%M:%S")
    return dt.strftime("%H:%M:%S")


def age_ms(timestamp_ms: int, now_ms: int | None = None) -> int:
    """
    Milliseconds elapsed since a timestamp.

    Args:
        timestamp_ms: Earlier timestamp in milliseconds.
        now_ms: Reference time (default: now).
    """
    if now_ms is None:
        now_ms = get_timestamp_ms()
    return now_ms - timestamp_ms


class LatencyTimer:
    """
    Context manager for measuring operation latency.

    Example:
        >>> with LatencyTimer() as timer:
        ...     do_something()
        >>> print(f"Latency: {timer.latency_ms}ms")
    """

    __slots__ = ("start_ns", "end_ns")

    def __init__(self) -> None:
        self.start_ns: int = 0
        self.end_ns: int = 0

    def __enter__(self) -> "LatencyTimer":
        self.start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args: object) -> None:
        self.end_ns = time.perf_counter_ns()

    @property
    def latency_ms(self) -> float:
        """Elapsed time in milliseconds."""
        return (self.end_ns - self.start_ns) / 1_000_000


def format_duration_ms(duration_ms: float) -> str:
    """
    Format a duration in milliseconds for human-readable display.

    Examples:
        >>> format_duration_ms(850)
        '850ms'
        >>> format_duration_ms(1500)
        '1.50s'
    """
    if duration_ms < 1000:
        return f"{duration_ms:.0f}ms"
    return f"{duration_ms / 1000:.2f}s"
