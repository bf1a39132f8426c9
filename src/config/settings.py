"""Application settings and runtime config resolution.

This module centralizes environment-backed defaults and resolution rules used by
both the CLI and the research graph.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

# LLM env names and defaults
ENV_MODEL_PROVIDER = "MODEL_PROVIDER"
ENV_MODEL_NAME = "MODEL_NAME"
ENV_OPENAI_API_BASE_URL = "OPENAI_API_BASE_URL"
ENV_CONTEXT_SIZE = "CONTEXT_SIZE"

ALLOWED_PROVIDERS = {"anthropic", "openai", "openrouter"}
DEFAULT_MODEL_PROVIDER = "openai"
DEFAULT_MODEL_NAME_BY_PROVIDER = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "openrouter": "openai/gpt-4o-mini",
}
DEFAULT_CONTEXT_SIZE = 128_000

# Search provider env names and defaults
ENV_SEARCH_PROVIDER = "SEARCH_PROVIDER"
ENV_FIRECRAWL_API_KEY = "FIRECRAWL_API_KEY"
ENV_FIRECRAWL_BASE_URL = "FIRECRAWL_BASE_URL"
ENV_TAVILY_API_KEY = "TAVILY_API_KEY"
DEFAULT_FIRECRAWL_BASE_URL = "https://api.firecrawl.dev"

# Deep research env names and defaults
ENV_REQUEST_DELAY = "DEEP_RESEARCH_REQUEST_DELAY"
ENV_MAX_RETRIES = "DEEP_RESEARCH_MAX_RETRIES"
ENV_INITIAL_RETRY_DELAY = "DEEP_RESEARCH_INITIAL_RETRY_DELAY"
ENV_MAX_RETRY_DELAY = "DEEP_RESEARCH_MAX_RETRY_DELAY"
ENV_MAX_CONTENT_LENGTH = "DEEP_RESEARCH_MAX_CONTENT_LENGTH"
ENV_REPORT_TOKEN_BUDGET = "DEEP_RESEARCH_REPORT_TOKEN_BUDGET"
ENV_SUMMARIZE_TIMEOUT = "DEEP_RESEARCH_SUMMARIZE_TIMEOUT"
ENV_SEARCH_TIMEOUT = "DEEP_RESEARCH_SEARCH_TIMEOUT"
ENV_MAX_TOTAL_QUERIES = "DEEP_RESEARCH_MAX_TOTAL_QUERIES"
ENV_MAX_DEPTH_ITERATIONS = "DEEP_RESEARCH_MAX_DEPTH_ITERATIONS"
ENV_CONCURRENCY = "DEEP_RESEARCH_CONCURRENCY"
ENV_STRATEGY = "DEEP_RESEARCH_STRATEGY"

DEFAULT_REQUEST_DELAY = 5.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_RETRY_DELAY = 5.0
DEFAULT_MAX_RETRY_DELAY = 60.0
DEFAULT_BACKOFF_FACTOR = 1.5
DEFAULT_MAX_CONTENT_LENGTH = 8000
DEFAULT_REPORT_TOKEN_BUDGET = 150_000
DEFAULT_SUMMARIZE_TIMEOUT = 60.0
DEFAULT_SEARCH_TIMEOUT = 30.0
DEFAULT_MAX_TOTAL_QUERIES = 15
DEFAULT_MAX_DEPTH_ITERATIONS = 3
DEFAULT_CONCURRENCY = 1


class SearchProviderType(str, Enum):
    """Available web search/scrape providers."""

    FIRECRAWL = "firecrawl"
    TAVILY = "tavily"


class ResearchStrategyType(str, Enum):
    """How the research driver decides which queries to run."""

    PLAN = "plan"
    FRONTIER = "frontier"


DEFAULT_SEARCH_PROVIDER: SearchProviderType = SearchProviderType.FIRECRAWL
DEFAULT_STRATEGY: ResearchStrategyType = ResearchStrategyType.PLAN


def _clamp(value, minimum, maximum):
    return max(minimum, min(maximum, value))


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int, maximum: int) -> int:
    try:
        return _clamp(int(env.get(name, default)), minimum, maximum)
    except ValueError:
        return default


def _env_float(
    env: Mapping[str, str], name: str, default: float, minimum: float, maximum: float
) -> float:
    try:
        return _clamp(float(env.get(name, default)), minimum, maximum)
    except ValueError:
        return default


@dataclass(frozen=True)
class LLMSettings:
    provider: str
    model_name: Optional[str]
    base_url: Optional[str]
    context_size: int


@dataclass(frozen=True)
class SearchSettings:
    provider: SearchProviderType
    firecrawl_api_key: Optional[str]
    firecrawl_base_url: str
    tavily_api_key: Optional[str]


@dataclass(frozen=True)
class DeepResearchSettings:
    request_delay: float = DEFAULT_REQUEST_DELAY
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH
    report_token_budget: int = DEFAULT_REPORT_TOKEN_BUDGET
    summarize_timeout: float = DEFAULT_SUMMARIZE_TIMEOUT
    search_timeout: float = DEFAULT_SEARCH_TIMEOUT
    max_total_queries: int = DEFAULT_MAX_TOTAL_QUERIES
    max_depth_iterations: int = DEFAULT_MAX_DEPTH_ITERATIONS
    concurrency: int = DEFAULT_CONCURRENCY
    strategy: ResearchStrategyType = DEFAULT_STRATEGY


@dataclass(frozen=True)
class AppSettings:
    llm: LLMSettings
    search: SearchSettings
    deep_research: DeepResearchSettings


def resolve_llm_settings(
    provider_override: Optional[str] = None,
    model_name_override: Optional[str] = None,
    env: Mapping[str, str] = os.environ,
) -> LLMSettings:
    provider = (provider_override or env.get(ENV_MODEL_PROVIDER) or DEFAULT_MODEL_PROVIDER).lower()
    if provider not in ALLOWED_PROVIDERS:
        valid = ", ".join(sorted(ALLOWED_PROVIDERS))
        raise ValueError(f"Invalid model provider '{provider}'. Valid options: {valid}")

    try:
        context_size = int(env.get(ENV_CONTEXT_SIZE, DEFAULT_CONTEXT_SIZE))
    except ValueError:
        context_size = DEFAULT_CONTEXT_SIZE
    if context_size <= 0:
        context_size = DEFAULT_CONTEXT_SIZE

    return LLMSettings(
        provider=provider,
        model_name=model_name_override or env.get(ENV_MODEL_NAME),
        base_url=env.get(ENV_OPENAI_API_BASE_URL) or None,
        context_size=context_size,
    )


def resolve_search_provider(
    override: Optional[str] = None,
    env: Mapping[str, str] = os.environ,
) -> SearchProviderType:
    if value := (override or env.get(ENV_SEARCH_PROVIDER)):
        try:
            return SearchProviderType(value.lower())
        except ValueError:
            valid_values = ", ".join(p.value for p in SearchProviderType)
            raise ValueError(
                f"Invalid SEARCH_PROVIDER '{value}'. Valid options: {valid_values}"
            )

    return DEFAULT_SEARCH_PROVIDER


def resolve_search_settings(
    provider_override: Optional[str] = None,
    env: Mapping[str, str] = os.environ,
) -> SearchSettings:
    return SearchSettings(
        provider=resolve_search_provider(provider_override, env=env),
        firecrawl_api_key=env.get(ENV_FIRECRAWL_API_KEY) or None,
        firecrawl_base_url=env.get(ENV_FIRECRAWL_BASE_URL) or DEFAULT_FIRECRAWL_BASE_URL,
        tavily_api_key=env.get(ENV_TAVILY_API_KEY) or None,
    )


def resolve_strategy(
    override: Optional[str] = None,
    env: Mapping[str, str] = os.environ,
) -> ResearchStrategyType:
    if value := (override or env.get(ENV_STRATEGY)):
        try:
            return ResearchStrategyType(value.lower())
        except ValueError:
            valid_values = ", ".join(s.value for s in ResearchStrategyType)
            raise ValueError(
                f"Invalid DEEP_RESEARCH_STRATEGY '{value}'. Valid options: {valid_values}"
            )

    return DEFAULT_STRATEGY


def resolve_deep_research_settings(
    strategy_override: Optional[str] = None,
    concurrency_override: Optional[int] = None,
    env: Mapping[str, str] = os.environ,
) -> DeepResearchSettings:
    if concurrency_override is not None:
        concurrency = _clamp(concurrency_override, 1, 10)
    else:
        concurrency = _env_int(env, ENV_CONCURRENCY, DEFAULT_CONCURRENCY, 1, 10)

    return DeepResearchSettings(
        request_delay=_env_float(env, ENV_REQUEST_DELAY, DEFAULT_REQUEST_DELAY, 0.0, 120.0),
        max_retries=_env_int(env, ENV_MAX_RETRIES, DEFAULT_MAX_RETRIES, 0, 10),
        initial_retry_delay=_env_float(
            env, ENV_INITIAL_RETRY_DELAY, DEFAULT_INITIAL_RETRY_DELAY, 0.0, 120.0
        ),
        max_retry_delay=_env_float(env, ENV_MAX_RETRY_DELAY, DEFAULT_MAX_RETRY_DELAY, 0.0, 600.0),
        max_content_length=_env_int(
            env, ENV_MAX_CONTENT_LENGTH, DEFAULT_MAX_CONTENT_LENGTH, 500, 200_000
        ),
        report_token_budget=_env_int(
            env, ENV_REPORT_TOKEN_BUDGET, DEFAULT_REPORT_TOKEN_BUDGET, 1_000, 1_000_000
        ),
        summarize_timeout=_env_float(
            env, ENV_SUMMARIZE_TIMEOUT, DEFAULT_SUMMARIZE_TIMEOUT, 1.0, 600.0
        ),
        search_timeout=_env_float(env, ENV_SEARCH_TIMEOUT, DEFAULT_SEARCH_TIMEOUT, 1.0, 300.0),
        max_total_queries=_env_int(env, ENV_MAX_TOTAL_QUERIES, DEFAULT_MAX_TOTAL_QUERIES, 1, 100),
        max_depth_iterations=_env_int(
            env, ENV_MAX_DEPTH_ITERATIONS, DEFAULT_MAX_DEPTH_ITERATIONS, 0, 10
        ),
        concurrency=concurrency,
        strategy=resolve_strategy(strategy_override, env=env),
    )


def get_app_settings(env: Mapping[str, str] = os.environ) -> AppSettings:
    return AppSettings(
        llm=resolve_llm_settings(env=env),
        search=resolve_search_settings(env=env),
        deep_research=resolve_deep_research_settings(env=env),
    )


def get_default_model_for_provider(provider: str) -> str:
    return DEFAULT_MODEL_NAME_BY_PROVIDER.get(provider, DEFAULT_MODEL_NAME_BY_PROVIDER[DEFAULT_MODEL_PROVIDER])
