"""Deep research runtime config parsing.

Provides a single parser for RunnableConfig configurable fields, layered on
top of the environment-backed app settings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Optional

from langchain_core.runnables import RunnableConfig

from src.config.settings import (
    AppSettings,
    DeepResearchSettings,
    ResearchStrategyType,
    SearchProviderType,
    get_app_settings,
    resolve_search_provider,
    resolve_strategy,
)

from .utils.progress import ProgressCallback


@dataclass(frozen=True)
class DeepResearchConfig:
    """Effective configuration of one graph invocation."""

    model_provider: str
    model_name: Optional[str]
    search_provider: SearchProviderType
    settings: DeepResearchSettings
    on_progress: Optional[ProgressCallback] = None
    cancel_event: Optional[asyncio.Event] = None

    @property
    def strategy(self) -> ResearchStrategyType:
        return self.settings.strategy


def _get_configurable(config: RunnableConfig | None) -> dict[str, Any]:
    if not config:
        return {}
    configurable = config.get("configurable", {})
    return configurable if isinstance(configurable, dict) else {}


def _get_value(configurable: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in configurable and configurable[key] is not None:
            return configurable[key]
    return default


def parse_deep_research_config(
    config: RunnableConfig | None,
    app_settings: AppSettings | None = None,
) -> DeepResearchConfig:
    app_settings = app_settings or get_app_settings()
    configurable = _get_configurable(config)
    settings = app_settings.deep_research

    strategy = _get_value(configurable, "strategy", "research_strategy")
    if strategy is not None:
        settings = replace(settings, strategy=resolve_strategy(str(strategy), env={}))

    concurrency = _get_value(configurable, "concurrency")
    if concurrency is not None:
        settings = replace(settings, concurrency=max(1, min(10, int(concurrency))))

    max_total_queries = _get_value(configurable, "max_total_queries")
    if max_total_queries is not None:
        settings = replace(settings, max_total_queries=max(1, int(max_total_queries)))

    request_delay = _get_value(configurable, "request_delay")
    if request_delay is not None:
        settings = replace(settings, request_delay=max(0.0, float(request_delay)))

    search_provider = _get_value(configurable, "search_provider")
    if search_provider is not None:
        search_provider = resolve_search_provider(str(search_provider), env={})
    else:
        search_provider = app_settings.search.provider

    return DeepResearchConfig(
        model_provider=_get_value(
            configurable,
            "model_provider",
            default=app_settings.llm.provider,
        ),
        model_name=_get_value(
            configurable,
            "model_name",
            default=app_settings.llm.model_name,
        ),
        search_provider=search_provider,
        settings=settings,
        on_progress=_get_value(configurable, "on_progress"),
        cancel_event=_get_value(configurable, "cancel_event"),
    )
