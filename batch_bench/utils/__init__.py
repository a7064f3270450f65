"""
Utilities package for the batch insert benchmark.

Exports shared helpers for logging and run timing.
Keep this package lightweight and free of domain-specific logic.
"""

from batch_bench.utils.logging import configure_logging, get_logger
from batch_bench.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
