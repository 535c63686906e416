#!/usr/bin/env python3
"""
Detection Benchmark Script.

Measures how detection time grows with the number of exchanges quoted
per pair.
"""

import random
import statistics
import sys
from pathlib import Path

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from discopic.core.types import FeeSchedule, Quote
from discopic.strategy.detector import detect_opportunities
from discopic.utils.time import LatencyTimer, get_timestamp_ms


PAIRS = ("BTC/USDT", "ETH/USDT", "BNB/USDT", "SOL/USDT", "XRP/USDT")
BASE_PRICES = {
    "BTC/USDT": 42150.0,
    "ETH/USDT": 2245.0,
    "BNB/USDT": 312.0,
    "SOL/USDT": 98.0,
    "XRP/USDT": 0.62,
}


def make_batch(exchange_count: int, rng: random.Random) -> list[Quote]:
    """Synthetic batch with prices jittered around a common level."""
    now = get_timestamp_ms()
    quotes = []
    for pair in PAIRS:
        base = BASE_PRICES[pair]
        for i in range(exchange_count):
            mid = base * (1 + rng.gauss(0, 0.003))
            quotes.append(
                Quote(
                    exchange=f"EXCHANGE{i:02d}",
                    pair=pair,
                    ask=mid * 1.0001,
                    bid=mid * 0.9999,
                    ask_volume=rng.uniform(0.5, 5.0),
                    bid_volume=rng.uniform(0.5, 5.0),
                    captured_at_ms=now,
                )
            )
    return quotes


def benchmark_detection(exchange_count: int, iterations: int) -> dict[str, float]:
    """Benchmark detect_opportunities for one batch shape."""
    rng = random.Random(42)
    fees = FeeSchedule({}, default=0.1)
    batches = [make_batch(exchange_count, rng) for _ in range(iterations)]
    latencies: list[float] = []
    found = 0

    for batch in batches:
        with LatencyTimer() as timer:
            found += len(detect_opportunities(batch, fees, 0.0))
        latencies.append(timer.latency_ms)

    return {
        "min": min(latencies),
        "avg": statistics.mean(latencies),
        "p50": statistics.median(latencies),
        "p99": sorted(latencies)[int(len(latencies) * 0.99)],
        "max": max(latencies),
        "found": found / iterations,
    }


def format_stats(stats: dict[str, float]) -> str:
    """Format stats for display."""
    return (
        f"min={stats['min']:.3f}ms, "
        f"avg={stats['avg']:.3f}ms, "
        f"p50={stats['p50']:.3f}ms, "
        f"p99={stats['p99']:.3f}ms, "
        f"max={stats['max']:.3f}ms, "
        f"opportunities/batch={stats['found']:.1f}"
    )


def main() -> int:
    """Run all benchmarks."""
    print("=" * 70)
    print("  DETECTION BENCHMARK")
    print("=" * 70)
    print()

    print("Warming up...")
    benchmark_detection(4, 100)
    print()

    for exchange_count in (4, 10, 25, 50):
        quotes = exchange_count * len(PAIRS)
        print(f"{exchange_count} exchanges x {len(PAIRS)} pairs ({quotes} quotes, 500 batches)")
        print(f"   {format_stats(benchmark_detection(exchange_count, 500))}")
        print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
