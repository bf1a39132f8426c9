"""
Search Provider Contract

Shared types for web search/scrape providers used by the deep research
engine. Every provider returns a list of SearchResultItem and signals
throttling with RateLimitError so the request executor can key its retry
logic on it.
"""

from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel


class SearchResultItem(BaseModel):
    """One raw search result. Any field may be missing or empty."""

    title: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.title and self.content and self.url)


class SearchProviderError(Exception):
    """Non-retryable failure reported by a search provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(SearchProviderError):
    """
    The provider throttled the request (HTTP 429 or equivalent).

    Attributes:
        retry_after: Provider-suggested wait in seconds, if it sent one.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status_code: int = 429,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


@runtime_checkable
class SearchProvider(Protocol):
    """Anything that can run one search query and return raw results."""

    name: str

    async def search(
        self,
        query: str,
        *,
        timeout: float,
        limit: int,
    ) -> list[SearchResultItem]:
        ...


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds. HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None
