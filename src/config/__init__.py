"""Configuration module for the deep research engine."""

from src.config.llm_factory import create_llm
from src.config.settings import (
    AppSettings,
    DeepResearchSettings,
    LLMSettings,
    ResearchStrategyType,
    SearchProviderType,
    SearchSettings,
    get_app_settings,
)

__all__ = [
    "create_llm",
    "get_app_settings",
    "AppSettings",
    "DeepResearchSettings",
    "LLMSettings",
    "SearchSettings",
    "ResearchStrategyType",
    "SearchProviderType",
]
