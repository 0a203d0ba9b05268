"""Telemetry and observability helpers.

This package emits routing events and tracks per-provider usage counters.
"""

from .logger import RouterLogger, configure_logging
from .stats import ProviderStats, ProviderStatsSnapshot, RouterStats

__all__ = [
    "ProviderStats",
    "ProviderStatsSnapshot",
    "RouterLogger",
    "RouterStats",
    "configure_logging",
]
