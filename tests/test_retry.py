"""Tests for retry logic with exponential backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from call_intelligence_mcp.errors import ErrorCategory, ProviderError
from call_intelligence_mcp.retry import _is_retryable, with_retry


def _err(category: ErrorCategory, retry_after: float | None = None) -> ProviderError:
    return ProviderError(category, f"{category.value} error", retry_after=retry_after)


class TestIsRetryable:
    @pytest.mark.parametrize("category", [
        ErrorCategory.RATE_LIMITED,
        ErrorCategory.PROVIDER_UNAVAILABLE,
        ErrorCategory.NETWORK_ERROR,
    ])
    def test_transient_categories(self, category):
        assert _is_retryable(_err(category)) is True

    @pytest.mark.parametrize("category", [
        ErrorCategory.INSUFFICIENT_CREDITS,
        ErrorCategory.INVALID_API_KEY,
        ErrorCategory.INVALID_REQUEST,
        ErrorCategory.UNKNOWN,
    ])
    def test_persistent_categories(self, category):
        assert _is_retryable(_err(category)) is False

    def test_unclassified_exceptions_are_not_retried(self):
        """Plain exceptions never retry, even with a transient-looking message."""
        assert _is_retryable(Exception("429 Too Many Requests")) is False


class TestWithRetry:
    """Tests for with_retry exponential backoff behavior."""

    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_success_first_attempt(self, mock_sleep):
        factory = AsyncMock(return_value="ok")

        result = await with_retry(factory)

        assert result == "ok"
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_succeeds_after_transient_error(self, mock_sleep):
        factory = AsyncMock(side_effect=[_err(ErrorCategory.RATE_LIMITED), "recovered"])

        result = await with_retry(factory)

        assert result == "recovered"
        assert factory.await_count == 2
        mock_sleep.assert_awaited_once()

    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_exhausts_max_attempts(self, mock_sleep):
        factory = AsyncMock(side_effect=_err(ErrorCategory.PROVIDER_UNAVAILABLE))

        with pytest.raises(ProviderError, match="PROVIDER_UNAVAILABLE"):
            await with_retry(factory, max_attempts=3)

        assert factory.await_count == 3
        assert mock_sleep.await_count == 2

    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_non_retryable_raises_immediately(self, mock_sleep):
        factory = AsyncMock(side_effect=_err(ErrorCategory.INVALID_API_KEY))

        with pytest.raises(ProviderError):
            await with_retry(factory)

        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("call_intelligence_mcp.retry.random.random", return_value=0.0)
    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_exponential_delays(self, mock_sleep, _mock_random):
        factory = AsyncMock(side_effect=_err(ErrorCategory.NETWORK_ERROR))

        with pytest.raises(ProviderError):
            await with_retry(factory, max_attempts=4, base_delay=1.0, max_delay=60.0)

        delays = [c.args[0] for c in mock_sleep.await_args_list]
        assert delays == [1.0, 2.0, 4.0]

    @patch("call_intelligence_mcp.retry.random.random", return_value=0.0)
    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_delay_capped_at_max(self, mock_sleep, _mock_random):
        factory = AsyncMock(side_effect=[_err(ErrorCategory.NETWORK_ERROR)] * 3 + ["ok"])

        await with_retry(factory, max_attempts=4, base_delay=10.0, max_delay=15.0)

        delays = [c.args[0] for c in mock_sleep.await_args_list]
        assert delays == [10.0, 15.0, 15.0]

    @patch("call_intelligence_mcp.retry.random.random", return_value=0.0)
    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_retry_after_raises_floor(self, mock_sleep, _mock_random):
        factory = AsyncMock(side_effect=[_err(ErrorCategory.RATE_LIMITED, retry_after=8), "ok"])

        await with_retry(factory, base_delay=1.0, max_delay=60.0)

        mock_sleep.assert_awaited_once_with(8.0)

    @patch("call_intelligence_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_custom_predicate(self, mock_sleep):
        factory = AsyncMock(side_effect=[ValueError("flaky"), "ok"])

        result = await with_retry(factory, should_retry=lambda exc: isinstance(exc, ValueError))

        assert result == "ok"
