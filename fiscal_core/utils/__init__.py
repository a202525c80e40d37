"""
Utilities package for the fiscalization data-access core.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of domain-specific logic.
"""

from fiscal_core.utils.logging import configure_logging, get_logger
from fiscal_core.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
