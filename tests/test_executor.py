"""Tests for the rate-limited request executor."""

import httpx
import pytest

from src.config.settings import DeepResearchSettings
from src.deep_research.executor import RateLimitedExecutor, is_rate_limited, suggested_wait
from src.tools.base import RateLimitError, SearchProviderError


class _Sleeps:
    """Records requested waits instead of sleeping."""

    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


class _Flaky:
    """Fails with the given errors, then succeeds."""

    def __init__(self, *errors: Exception, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestIsRateLimited:
    def test_rate_limit_error(self):
        assert is_rate_limited(RateLimitError())

    def test_status_code_attribute(self):
        assert is_rate_limited(SearchProviderError("slow down", status_code=429))
        assert not is_rate_limited(SearchProviderError("boom", status_code=500))

    def test_httpx_status_error(self):
        request = httpx.Request("POST", "https://api.example.com/search")
        response = httpx.Response(429, request=request, headers={"Retry-After": "7"})
        error = httpx.HTTPStatusError("429", request=request, response=response)

        assert is_rate_limited(error)
        assert suggested_wait(error) == 7.0

    def test_plain_errors(self):
        assert not is_rate_limited(ValueError("nope"))
        assert suggested_wait(ValueError("nope")) is None


class TestRateLimitedExecutor:
    async def test_returns_result_without_retry(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(sleep=sleeps)
        operation = _Flaky()

        assert await executor.execute(operation) == "ok"
        assert operation.calls == 1
        assert sleeps.waits == []

    async def test_retries_rate_limit_then_succeeds(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(max_retries=2, initial_delay=5.0, sleep=sleeps)
        operation = _Flaky(RateLimitError(), RateLimitError())

        assert await executor.execute(operation) == "ok"
        assert operation.calls == 3
        assert sleeps.waits == [5.0, 7.5]

    async def test_raises_after_retries_exhausted(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(max_retries=2, initial_delay=1.0, sleep=sleeps)
        operation = _Flaky(*(RateLimitError() for _ in range(5)))

        with pytest.raises(RateLimitError):
            await executor.execute(operation)

        # one attempt plus two retries
        assert operation.calls == 3
        assert len(sleeps.waits) == 2

    async def test_non_rate_limit_error_propagates_immediately(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(sleep=sleeps)
        operation = _Flaky(SearchProviderError("bad request", status_code=400))

        with pytest.raises(SearchProviderError, match="bad request"):
            await executor.execute(operation)

        assert operation.calls == 1
        assert sleeps.waits == []

    async def test_backoff_is_bounded(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(
            max_retries=6,
            initial_delay=10.0,
            backoff_factor=2.0,
            max_delay=30.0,
            sleep=sleeps,
        )
        operation = _Flaky(*(RateLimitError() for _ in range(6)))

        await executor.execute(operation)

        assert sleeps.waits == [10.0, 20.0, 30.0, 30.0, 30.0, 30.0]
        for n, wait in enumerate(sleeps.waits):
            assert wait <= min(10.0 * 2.0**n, 30.0)

    async def test_honours_retry_after_capped_at_max_delay(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(
            max_retries=2, initial_delay=5.0, max_delay=60.0, sleep=sleeps
        )
        operation = _Flaky(RateLimitError(retry_after=2.0), RateLimitError(retry_after=600.0))

        await executor.execute(operation)

        assert sleeps.waits == [2.0, 60.0]

    async def test_per_call_overrides(self):
        sleeps = _Sleeps()
        executor = RateLimitedExecutor(max_retries=5, initial_delay=5.0, sleep=sleeps)
        operation = _Flaky(RateLimitError(), RateLimitError())

        with pytest.raises(RateLimitError):
            await executor.execute(operation, max_retries=1, initial_delay=0.5)

        assert sleeps.waits == [0.5]

    def test_rejects_shrinking_backoff(self):
        with pytest.raises(ValueError):
            RateLimitedExecutor(backoff_factor=0.5)

    def test_from_settings(self):
        settings = DeepResearchSettings(
            max_retries=4, initial_retry_delay=1.0, max_retry_delay=9.0, backoff_factor=3.0
        )
        executor = RateLimitedExecutor.from_settings(settings)

        assert executor.max_retries == 4
        assert executor.initial_delay == 1.0
        assert executor.max_delay == 9.0
        assert executor.backoff_factor == 3.0
