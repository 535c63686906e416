"""
DiscoPic cross-exchange spread monitor.

Polls bid/ask quotes for the same trading pair across several crypto
exchanges and ranks the fee-adjusted price differences between them.
"""

__version__ = "1.0.0"
__author__ = "Tim"
