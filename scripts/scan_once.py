#!/usr/bin/env python3
"""
One-shot scan script.

Fetches a single quote batch from CoinAPI with the saved dashboard
settings, prints the opportunity table and exports it to JSON.
"""

import asyncio
import sys
from dataclasses import asdict
from pathlib import Path

import orjson

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from discopic.config.settings import get_settings
from discopic.config.store import ConfigStore
from discopic.core.types import FeeSchedule
from discopic.exchange.client import CoinAPIClient, CoinAPIError
from discopic.exchange.rate_limiter import RateLimiter
from discopic.strategy.analytics import summary_stats
from discopic.strategy.detector import detect_opportunities
from discopic.telemetry.reporter import CLIReporter


async def main() -> int:
    """Scan once and display opportunities."""
    settings = get_settings()
    config = ConfigStore(settings.config_path).load()

    if not config.has_api_key:
        print(f"No API key configured in {settings.config_path}")
        print("Save one from the dashboard settings first.")
        return 1

    print(f"Fetching {len(config.pairs)} pairs from {len(config.exchanges)} exchanges...")

    async with CoinAPIClient(
        base_url=settings.coinapi_url,
        rate_limiter=RateLimiter(
            requests_per_second=settings.requests_per_second,
            daily_quota=settings.daily_request_quota,
        ),
        pair_delay_seconds=settings.pair_delay_seconds,
        timeout_seconds=settings.request_timeout_seconds,
    ) as client:
        try:
            quotes = await client.get_all_quotes(
                config.pairs,
                config.exchanges,
                config.api_key.get_secret_value(),
            )
        except CoinAPIError as e:
            print(f"Error: {e}")
            return 1

        print(f"Received {len(quotes)} quotes ({client.remaining_requests} requests left today)")
        print()

    opportunities = detect_opportunities(
        quotes,
        FeeSchedule(config.fees),
        config.default_min_profit_pct,
    )

    reporter = CLIReporter()
    reporter.print_opportunities(opportunities, summary_stats(opportunities))

    # Export to JSON
    export_path = Path("opportunities.json")
    export_path.write_bytes(
        orjson.dumps([asdict(opp) for opp in opportunities], option=orjson.OPT_INDENT_2)
    )
    print(f"Exported to: {export_path}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
