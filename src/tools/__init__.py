"""Search/scrape tools for the deep research engine."""

from src.tools.base import (
    RateLimitError,
    SearchProvider,
    SearchProviderError,
    SearchResultItem,
)
from src.tools.firecrawl_search import FirecrawlSearch

__all__ = [
    "FirecrawlSearch",
    "RateLimitError",
    "SearchProvider",
    "SearchProviderError",
    "SearchResultItem",
]
