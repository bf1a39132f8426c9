"""
Deep research error taxonomy.

Fatal errors raised out of a research run carry the partial result that
was accumulated before the failure so callers can still use it.
"""

from typing import Optional

from src.tools.base import RateLimitError, SearchProviderError

from .state import ResearchResult

__all__ = [
    "RateLimitError",
    "SearchProviderError",
    "ResearchError",
    "ResearchThrottledError",
    "ResearchCancelledError",
]


class ResearchError(Exception):
    """Base class for failures that end a research run."""

    def __init__(self, message: str, partial: Optional[ResearchResult] = None):
        super().__init__(message)
        self.partial = partial or ResearchResult()


class ResearchThrottledError(ResearchError):
    """The search provider kept rate limiting after all retries. Try again later."""


class ResearchCancelledError(ResearchError):
    """The caller cancelled the run."""
