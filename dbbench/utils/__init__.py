"""
Utilities package for dbbench.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of benchmark-specific logic.
"""

from dbbench.utils.logging import configure_logging, get_logger
from dbbench.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
