"""Desktop user interface for the solar rebate funnel."""

from .app import FunnelApp, main  # noqa: F401

__all__ = ["FunnelApp", "main"]
