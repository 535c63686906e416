"""
Entry point for the spread monitor.

Usage:
    python -m discopic          # run the dashboard server
    python -m discopic demo     # print the demo opportunity table
    python -m discopic demo -1  # same, with a -1% minimum net profit
    discopic                    # if installed via pip
"""

import sys


# Try to use uvloop for better performance
try:
    import uvloop

    uvloop.install()
    UVLOOP_ENABLED = True
except ImportError:
    UVLOOP_ENABLED = False


def run_demo() -> int:
    """Detect on the built-in demo batch and print the table."""
    from discopic.config.constants import DEFAULT_MIN_PROFIT_PCT, DEFAULT_PROJECTION_AMOUNT
    from discopic.config.settings import DashboardConfig
    from discopic.core.types import FeeSchedule
    from discopic.simulation.market import demo_quotes
    from discopic.strategy.analytics import project_profit, summary_stats
    from discopic.strategy.detector import detect_opportunities
    from discopic.telemetry.reporter import CLIReporter

    min_profit = DEFAULT_MIN_PROFIT_PCT
    if len(sys.argv) > 2:
        try:
            min_profit = float(sys.argv[2])
        except ValueError:
            print(f"Invalid minimum profit: {sys.argv[2]}")
            return 1

    fees = FeeSchedule(DashboardConfig().fees)
    opportunities = detect_opportunities(demo_quotes(), fees, min_profit)

    reporter = CLIReporter()
    reporter.print_opportunities(
        opportunities,
        summary_stats(opportunities),
        title=f"DEMO MODE - min net profit {min_profit:.2f}%",
    )

    if opportunities:
        best = opportunities[0]
        print()
        reporter.print_details(best, project_profit(best, DEFAULT_PROJECTION_AMOUNT))

    return 0


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from discopic import __version__

    args = sys.argv[1:]
    if args and args[0] == "demo":
        return run_demo()
    if args and args[0] in ("-V", "--version"):
        print(f"discopic {__version__}")
        return 0
    if args:
        print(__doc__)
        return 2

    from discopic.dashboard.server import main as run_server

    print(f"  uvloop: {'Enabled' if UVLOOP_ENABLED else 'Disabled'}")
    try:
        run_server()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
