"""
Firecrawl Search Tool

Runs a web search through the Firecrawl search endpoint and scrapes every
hit to Markdown in the same request.

API Documentation: https://docs.firecrawl.dev/api-reference/endpoint/search
"""

import os
from typing import Any, Optional

import httpx

from src.tools.base import (
    RateLimitError,
    SearchProviderError,
    SearchResultItem,
    parse_retry_after,
)
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_FIRECRAWL_BASE_URL = "https://api.firecrawl.dev"


def _parse_items(payload: Any) -> list[SearchResultItem]:
    """Map a Firecrawl search response onto SearchResultItem, tolerating odd shapes."""
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    # v2 nests web hits under data.web
    if isinstance(data, dict):
        data = data.get("web", [])
    if not isinstance(data, list):
        return []

    items = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        metadata = entry.get("metadata") if isinstance(entry.get("metadata"), dict) else {}
        content = entry.get("markdown") or entry.get("content") or entry.get("description")
        items.append(
            SearchResultItem(
                title=entry.get("title") or metadata.get("title"),
                content=content if isinstance(content, str) else None,
                url=entry.get("url") or metadata.get("sourceURL"),
            )
        )
    return items


class FirecrawlSearch:
    """
    Firecrawl search/scrape client.

    Args:
        api_key: Firecrawl API key. Falls back to FIRECRAWL_API_KEY.
        base_url: API root. Falls back to FIRECRAWL_BASE_URL, then the public API.
        client: Optional shared httpx.AsyncClient (tests inject one).
    """

    name = "firecrawl"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or os.getenv("FIRECRAWL_API_KEY", "")
        self.base_url = (
            base_url or os.getenv("FIRECRAWL_BASE_URL") or DEFAULT_FIRECRAWL_BASE_URL
        ).rstrip("/")
        self._client = client

    async def search(
        self,
        query: str,
        *,
        timeout: float = 30.0,
        limit: int = 3,
    ) -> list[SearchResultItem]:
        endpoint = f"{self.base_url}/v1/search"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {
            "query": query,
            "limit": limit,
            "timeout": int(timeout * 1000),
            "scrapeOptions": {"formats": ["markdown"]},
        }

        if self._client is not None:
            response = await self._client.post(
                endpoint, json=payload, headers=headers, timeout=timeout
            )
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(endpoint, json=payload, headers=headers)

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("retry-after"))
            logger.warning(
                "Firecrawl rate limited", query=query, retry_after=retry_after
            )
            raise RateLimitError(
                f"Firecrawl rate limit exceeded for query '{query}'",
                retry_after=retry_after,
            )
        if response.status_code >= 400:
            raise SearchProviderError(
                f"Firecrawl search failed with HTTP {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise SearchProviderError(f"Firecrawl returned invalid JSON: {e}") from e

        if isinstance(body, dict) and body.get("success") is False:
            raise SearchProviderError(
                f"Firecrawl search unsuccessful: {body.get('error', 'unknown error')}"
            )

        items = _parse_items(body)
        logger.debug("Firecrawl search complete", query=query, results=len(items))
        return items
