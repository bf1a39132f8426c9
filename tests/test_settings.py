"""Tests for environment-backed settings resolution."""

import pytest

from src.config.settings import (
    DEFAULT_FIRECRAWL_BASE_URL,
    ResearchStrategyType,
    SearchProviderType,
    get_app_settings,
    get_default_model_for_provider,
    resolve_deep_research_settings,
    resolve_llm_settings,
    resolve_search_settings,
)


class TestLLMSettings:
    def test_defaults(self):
        settings = resolve_llm_settings(env={})

        assert settings.provider == "openai"
        assert settings.model_name is None
        assert settings.context_size == 128_000

    def test_override_beats_env(self):
        env = {"MODEL_PROVIDER": "openai", "MODEL_NAME": "gpt-4o"}

        settings = resolve_llm_settings("Anthropic", "claude-x", env=env)

        assert settings.provider == "anthropic"
        assert settings.model_name == "claude-x"

    def test_invalid_provider(self):
        with pytest.raises(ValueError, match="Invalid model provider"):
            resolve_llm_settings(env={"MODEL_PROVIDER": "aliyun"})

    def test_bad_context_size_falls_back(self):
        assert resolve_llm_settings(env={"CONTEXT_SIZE": "lots"}).context_size == 128_000
        assert resolve_llm_settings(env={"CONTEXT_SIZE": "-5"}).context_size == 128_000
        assert resolve_llm_settings(env={"CONTEXT_SIZE": "64000"}).context_size == 64_000

    def test_default_model(self):
        assert get_default_model_for_provider("unknown") == get_default_model_for_provider("openai")


class TestSearchSettings:
    def test_defaults_to_firecrawl(self):
        settings = resolve_search_settings(env={})

        assert settings.provider == SearchProviderType.FIRECRAWL
        assert settings.firecrawl_base_url == DEFAULT_FIRECRAWL_BASE_URL
        assert settings.firecrawl_api_key is None

    def test_tavily_from_env(self):
        settings = resolve_search_settings(
            env={"SEARCH_PROVIDER": "TAVILY", "TAVILY_API_KEY": "tvly-x"}
        )

        assert settings.provider == SearchProviderType.TAVILY
        assert settings.tavily_api_key == "tvly-x"

    def test_invalid_provider(self):
        with pytest.raises(ValueError, match="Invalid SEARCH_PROVIDER"):
            resolve_search_settings(env={"SEARCH_PROVIDER": "bing"})


class TestDeepResearchSettings:
    def test_defaults(self):
        settings = resolve_deep_research_settings(env={})

        assert settings.request_delay == 5.0
        assert settings.max_retries == 2
        assert settings.initial_retry_delay == 5.0
        assert settings.max_retry_delay == 60.0
        assert settings.backoff_factor == 1.5
        assert settings.max_content_length == 8000
        assert settings.report_token_budget == 150_000
        assert settings.summarize_timeout == 60.0
        assert settings.search_timeout == 30.0
        assert settings.max_total_queries == 15
        assert settings.max_depth_iterations == 3
        assert settings.concurrency == 1
        assert settings.strategy == ResearchStrategyType.PLAN

    def test_invalid_numbers_fall_back_and_values_are_clamped(self):
        settings = resolve_deep_research_settings(
            env={
                "DEEP_RESEARCH_MAX_RETRIES": "many",
                "DEEP_RESEARCH_REQUEST_DELAY": "-3",
                "DEEP_RESEARCH_CONCURRENCY": "50",
                "DEEP_RESEARCH_MAX_TOTAL_QUERIES": "7",
            }
        )

        assert settings.max_retries == 2
        assert settings.request_delay == 0.0
        assert settings.concurrency == 10
        assert settings.max_total_queries == 7

    def test_overrides(self):
        settings = resolve_deep_research_settings(
            strategy_override="frontier", concurrency_override=0, env={}
        )

        assert settings.strategy == ResearchStrategyType.FRONTIER
        assert settings.concurrency == 1

    def test_invalid_strategy(self):
        with pytest.raises(ValueError, match="DEEP_RESEARCH_STRATEGY"):
            resolve_deep_research_settings(env={"DEEP_RESEARCH_STRATEGY": "random"})


def test_get_app_settings():
    settings = get_app_settings(env={"MODEL_PROVIDER": "anthropic", "SEARCH_PROVIDER": "tavily"})

    assert settings.llm.provider == "anthropic"
    assert settings.search.provider == SearchProviderType.TAVILY
    assert settings.deep_research.max_total_queries == 15
