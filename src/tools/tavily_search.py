"""
Tavily Web Search Tool

This module performs web searches using the Tavily Search API. It is the
alternative search provider for the deep research engine (set
SEARCH_PROVIDER=tavily).

API Documentation: https://docs.tavily.com/documentation/api-reference/endpoint/search
"""

import asyncio
import os
from typing import Any, Literal, Optional

from pydantic import BaseModel
from tavily import AsyncTavilyClient

from src.tools.base import RateLimitError, SearchProviderError, SearchResultItem
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

# Type definitions
SearchDepth = Literal["basic", "advanced"]
SearchTopic = Literal["general", "news", "finance"]


class TavilySearchResult(BaseModel):
    """A single Tavily search result."""

    title: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None
    raw_content: Optional[str] = None
    score: Optional[float] = None


def _get_tavily_client(api_key: Optional[str] = None) -> AsyncTavilyClient:
    """Get Tavily client with API key from parameter or environment."""
    tavily_api_key = api_key or os.getenv("TAVILY_API_KEY")
    if not tavily_api_key:
        raise ValueError(
            "TAVILY_API_KEY is required. Set it in .env file or pass as parameter."
        )
    return AsyncTavilyClient(api_key=tavily_api_key)


def _is_rate_limit(error: Exception) -> bool:
    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True
    error_msg = str(error).lower()
    return "rate limit" in error_msg or "too many requests" in error_msg


class TavilySearch:
    """
    Tavily search client.

    Args:
        api_key: Tavily API key. Falls back to TAVILY_API_KEY.
        search_depth: 'basic' (1 credit) or 'advanced' (2 credits).
        topic: Category of the search.
    """

    name = "tavily"

    def __init__(
        self,
        api_key: Optional[str] = None,
        search_depth: SearchDepth = "advanced",
        topic: SearchTopic = "general",
        client: Optional[AsyncTavilyClient] = None,
    ):
        self._client = client or _get_tavily_client(api_key)
        self.search_depth = search_depth
        self.topic = topic

    async def search(
        self,
        query: str,
        *,
        timeout: float = 30.0,
        limit: int = 3,
    ) -> list[SearchResultItem]:
        # Clamp max_results to valid range
        max_results = max(1, min(limit, 20))

        try:
            response: dict[str, Any] = await asyncio.wait_for(
                self._client.search(
                    query=query,
                    search_depth=self.search_depth,
                    max_results=max_results,
                    topic=self.topic,
                    include_raw_content=True,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise
        except Exception as e:
            if _is_rate_limit(e):
                logger.warning("Tavily rate limited", query=query)
                raise RateLimitError(f"Tavily rate limit exceeded: {e}") from e
            raise SearchProviderError(f"Error performing Tavily search: {e}") from e

        results = [
            TavilySearchResult(**item)
            for item in response.get("results", [])
            if isinstance(item, dict)
        ]
        return [
            SearchResultItem(
                title=result.title,
                # Prefer the scraped page body over Tavily's snippet
                content=result.raw_content or result.content,
                url=result.url,
            )
            for result in results
        ]
