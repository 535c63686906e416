"""
CLI reporter for terminal output.

Renders the opportunity table, a summary line and the per-opportunity
detail breakdown with box-drawing characters.
"""

import sys
from collections.abc import Sequence
from typing import TextIO

from discopic.core.types import Opportunity, ProfitProjection, SummaryStats
from discopic.telemetry.metrics import MetricsCollector
from discopic.utils.formatting import format_percent, format_price
from discopic.utils.time import format_duration_ms


class CLIReporter:
    """
    Terminal renderer for opportunities.

    Displays:
    - Opportunity table (pair, legs, prices, spread, gross and net profit)
    - Summary line with count, average and best net profit
    - Refresh metrics when a collector is attached
    """

    # Box drawing characters
    BOX_TL = "\u2554"  # ╔
    BOX_TR = "\u2557"  # ╗
    BOX_BL = "\u255a"  # ╚
    BOX_BR = "\u255d"  # ╝
    BOX_H = "\u2550"  # ═
    BOX_V = "\u2551"  # ║
    BOX_LT = "\u2560"  # ╠
    BOX_RT = "\u2563"  # ╣
    THIN_V = "\u2502"  # │

    # (title, width) per column
    COLUMNS: tuple[tuple[str, int], ...] = (
        ("PAIR", 10),
        ("BUY ON", 10),
        ("BUY PRICE", 12),
        ("SELL ON", 10),
        ("SELL PRICE", 12),
        ("SPREAD", 9),
        ("GROSS", 8),
        ("NET", 8),
    )

    def __init__(
        self,
        metrics: MetricsCollector | None = None,
        output: TextIO | None = None,
    ) -> None:
        """
        Initialize CLI reporter.

        Args:
            metrics: Optional metrics collector for the footer.
            output: Output stream (default: stdout).
        """
        self._metrics = metrics
        self._output = output or sys.stdout
        # Cells are joined by " │ "
        self._width = sum(width for _, width in self.COLUMNS) + 3 * (len(self.COLUMNS) - 1) + 4

    @property
    def width(self) -> int:
        return self._width

    def _line(self, content: str) -> str:
        """Create a line with borders."""
        inner_width = self._width - 2
        return f"{self.BOX_V}{content.ljust(inner_width)[:inner_width]}{self.BOX_V}"

    def _divider(self, left: str = BOX_LT, right: str = BOX_RT) -> str:
        return f"{left}{self.BOX_H * (self._width - 2)}{right}"

    def _row(self, cells: Sequence[str]) -> str:
        padded = []
        for (_, width), cell in zip(self.COLUMNS, cells, strict=True):
            numeric = cell[:1].isdigit() or cell.startswith("-")
            padded.append(cell.rjust(width) if numeric else cell.ljust(width))
        return self._line(" " + f" {self.THIN_V} ".join(padded))

    def render_opportunities(
        self,
        opportunities: Sequence[Opportunity],
        summary: SummaryStats | None = None,
        title: str = "DISCOPIC SPREAD MONITOR",
    ) -> str:
        """
        Render the opportunity table.

        Args:
            opportunities: Rows to show, already filtered and sorted.
            summary: Optional summary for the footer line.
            title: Header text.

        Returns:
            Formatted table string.
        """
        lines = [
            self._divider(self.BOX_TL, self.BOX_TR),
            self._line(f"  {title}"),
            self._divider(),
            self._row([name for name, _ in self.COLUMNS]),
            self._divider(),
        ]

        if not opportunities:
            lines.append(self._line("  No arbitrage opportunities found"))
        for opp in opportunities:
            lines.append(
                self._row(
                    [
                        opp.pair,
                        opp.buy_exchange,
                        format_price(opp.buy_price),
                        opp.sell_exchange,
                        format_price(opp.sell_price),
                        format_price(opp.spread),
                        format_percent(opp.gross_profit_pct),
                        format_percent(opp.net_profit_pct),
                    ]
                )
            )

        if summary is not None:
            lines.append(self._divider())
            lines.append(self._line(f"  {self.render_summary(summary)}"))

        if self._metrics is not None:
            lines.append(self._line(f"  {self.render_metrics()}"))

        lines.append(self._divider(self.BOX_BL, self.BOX_BR))
        return "\n".join(lines)

    @staticmethod
    def render_summary(summary: SummaryStats) -> str:
        """Single-line summary of a result set."""
        return (
            f"Opportunities: {summary.count}  |  "
            f"Avg net: {format_percent(summary.avg_net_profit_pct)}  |  "
            f"Best net: {format_percent(summary.max_net_profit_pct)}  |  "
            f"Volume: {summary.total_tradeable_volume:,.4f}"
        )

    def render_metrics(self) -> str:
        """Single-line view of refresh metrics."""
        if self._metrics is None:
            return ""

        stats = self._metrics.refresh_stats
        fetch = self._metrics.get_latency_stats("refresh")
        fetch_text = format_duration_ms(fetch.avg_ms) if fetch.count else "---"
        return (
            f"Refreshes: {stats.refreshes} ({stats.failures} failed)  |  "
            f"Quotes: {stats.last_quote_count}  |  Avg refresh: {fetch_text}"
        )

    @staticmethod
    def render_details(opportunity: Opportunity, projection: ProfitProjection) -> str:
        """
        Render the detail breakdown for one opportunity.

        Mirrors the dashboard's "View" dialog.
        """
        investment = f"{projection.investment_amount:,.0f}"

        return "\n".join(
            [
                "Arbitrage Opportunity Details",
                "================================",
                f"Trading Pair: {opportunity.pair}",
                f"Buy on: {opportunity.buy_exchange} @ ${format_price(opportunity.buy_price)}",
                f"Sell on: {opportunity.sell_exchange} @ ${format_price(opportunity.sell_price)}",
                f"Price Spread: ${format_price(opportunity.spread)}",
                f"Gross Profit: {format_percent(opportunity.gross_profit_pct)}",
                f"Net Profit: {format_percent(opportunity.net_profit_pct)}",
                "",
                f"Example with ${investment} investment:",
                f"- Buy {projection.buy_amount:.8f} {opportunity.base_asset}",
                f"- Buy Fee: ${projection.buy_fee_amount:.2f}",
                f"- Sell Value: ${projection.sell_value:.2f}",
                f"- Sell Fee: ${projection.sell_fee_amount:.2f}",
                f"- Net Profit: ${projection.profit:.2f} ({format_percent(projection.profit_pct)})",
                "",
                "Note: This does not account for transfer fees, slippage, or execution time.",
            ]
        )

    def print_opportunities(
        self,
        opportunities: Sequence[Opportunity],
        summary: SummaryStats | None = None,
        title: str = "DISCOPIC SPREAD MONITOR",
    ) -> None:
        """Write the table to the output stream."""
        self._output.write(self.render_opportunities(opportunities, summary, title))
        self._output.write("\n")
        self._output.flush()

    def print_details(self, opportunity: Opportunity, projection: ProfitProjection) -> None:
        """Write the detail breakdown to the output stream."""
        self._output.write(self.render_details(opportunity, projection))
        self._output.write("\n")
        self._output.flush()
