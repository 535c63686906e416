"""Dashboard module for web-based monitoring."""

from discopic.dashboard.server import create_app, main


__all__ = [
    "create_app",
    "main",
]
