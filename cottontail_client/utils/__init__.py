"""
Utilities package for the Cottontail DB client.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of protocol-specific logic.
"""

from cottontail_client.utils.logging import configure_logging, get_logger
from cottontail_client.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
