"""Monitoring policy and alert rules for deployed artifacts."""

from .configurator import configure

__all__ = ["configure"]
