"""
Search Provider Assembly

Builds the configured web search/scrape provider for the research driver.
"""

from typing import Optional

from src.config.settings import SearchProviderType, SearchSettings, resolve_search_settings
from src.tools.base import SearchProvider


def get_search_provider(settings: Optional[SearchSettings] = None) -> SearchProvider:
    """
    Create the search provider selected by SEARCH_PROVIDER.

    Args:
        settings: Search settings; resolved from the environment when omitted.

    Returns:
        A FirecrawlSearch or TavilySearch instance.
    """
    settings = settings or resolve_search_settings()

    # 延迟导入，避免未使用的 provider SDK 被加载
    if settings.provider == SearchProviderType.TAVILY:
        from src.tools.tavily_search import TavilySearch

        return TavilySearch(api_key=settings.tavily_api_key)

    from src.tools.firecrawl_search import FirecrawlSearch

    return FirecrawlSearch(
        api_key=settings.firecrawl_api_key,
        base_url=settings.firecrawl_base_url,
    )
