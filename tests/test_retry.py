"""Tests for retry mechanism with exponential backoff."""

from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from qbot.app.core.retry import RetryPolicy, call_with_retry

_REQUEST = httpx.Request("POST", "https://api.openai.test/v1/chat/completions")


def _status_error(cls, status_code: int):
    response = httpx.Response(status_code, request=_REQUEST)
    return cls(f"HTTP {status_code}", response=response, body=None)


class TestRetryPolicy:
    """Test RetryPolicy configuration."""

    def test_default_values(self):
        policy = RetryPolicy()

        assert policy.max_retries == 2
        assert policy.base_delay == 0.5
        assert policy.max_delay == 8.0
        assert policy.exponential_base == 2.0

    def test_calculate_delay(self):
        """Test exponential delay calculation."""
        policy = RetryPolicy(base_delay=0.5, max_delay=10.0, exponential_base=2.0)

        assert policy.calculate_delay(0) == 0.5
        assert policy.calculate_delay(1) == 1.0
        assert policy.calculate_delay(2) == 2.0

    def test_calculate_delay_capped_at_max(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0, exponential_base=2.0)

        # 1.0 * 2^3 = 8.0, capped at 5.0
        assert policy.calculate_delay(3) == 5.0


class TestRetryPolicyIsRetryable:
    def test_connection_and_timeout_errors(self):
        policy = RetryPolicy()

        assert policy.is_retryable(openai.APIConnectionError(request=_REQUEST))
        assert policy.is_retryable(openai.APITimeoutError(request=_REQUEST))
        assert policy.is_retryable(TimeoutError())

    def test_rate_limit_and_5xx(self):
        policy = RetryPolicy()

        assert policy.is_retryable(_status_error(openai.RateLimitError, 429))
        assert policy.is_retryable(_status_error(openai.InternalServerError, 503))

    def test_client_errors_are_not_retryable(self):
        policy = RetryPolicy()

        assert not policy.is_retryable(_status_error(openai.BadRequestError, 400))
        assert not policy.is_retryable(_status_error(openai.AuthenticationError, 401))
        assert not policy.is_retryable(_status_error(openai.NotFoundError, 404))

    def test_plain_errors_are_not_retryable(self):
        assert not RetryPolicy().is_retryable(ValueError("bad"))


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        func = AsyncMock(return_value="ok")

        result = await call_with_retry(func, "a", policy=RetryPolicy(base_delay=0), key="b")

        assert result == "ok"
        func.assert_awaited_once_with("a", key="b")

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        func = AsyncMock(side_effect=[TimeoutError(), TimeoutError(), "ok"])

        result = await call_with_retry(func, policy=RetryPolicy(max_retries=2, base_delay=0))

        assert result == "ok"
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_max_retries_exceeded_reraises_last(self):
        func = AsyncMock(side_effect=openai.APIConnectionError(request=_REQUEST))

        with pytest.raises(openai.APIConnectionError):
            await call_with_retry(func, policy=RetryPolicy(max_retries=2, base_delay=0))

        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_no_retry_on_non_retryable(self):
        func = AsyncMock(side_effect=_status_error(openai.BadRequestError, 400))

        with pytest.raises(openai.BadRequestError):
            await call_with_retry(func, policy=RetryPolicy(max_retries=3, base_delay=0))

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_exponential_backoff_delay(self):
        func = AsyncMock(side_effect=[TimeoutError(), TimeoutError(), "ok"])
        policy = RetryPolicy(max_retries=2, base_delay=0.5, exponential_base=2.0)

        with patch("qbot.app.core.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await call_with_retry(func, policy=policy)

        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]
