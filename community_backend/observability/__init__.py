"""
Observability module.

Provides structured logging and correlation ID tracking.
"""

from community_backend.observability.correlation import (
    get_correlation_id,
    set_correlation_id,
)
from community_backend.observability.logger import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
]
