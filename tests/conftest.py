"""Shared fixtures."""

import pytest

from src.config.settings import DeepResearchSettings


@pytest.fixture
def fast_settings() -> DeepResearchSettings:
    """Settings with every delay disabled."""
    return DeepResearchSettings(
        request_delay=0.0,
        initial_retry_delay=0.0,
        max_retry_delay=0.0,
        summarize_timeout=5.0,
        search_timeout=5.0,
    )
