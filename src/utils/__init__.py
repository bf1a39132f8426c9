"""Utility modules for the deep research engine."""

from src.utils.logging_config import (
    bound_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "bound_context",
]
