"""Unit tests for the retry helper."""

from unittest.mock import AsyncMock, patch

import pytest

from pitchcoach.errors import QuotaExceededError, RetryExhaustedError
from pitchcoach.services.retry import is_quota_error, retry_async


class StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class TestIsQuotaError:
    """Tests for quota / rate-limit detection."""

    @pytest.mark.parametrize(
        "message",
        [
            "Quota exceeded for project",
            "Rate limit reached for gpt-test",
            "RESOURCE_EXHAUSTED",
            "HTTP 429 Too Many Requests",
        ],
    )
    def test_marker_in_message(self, message):
        assert is_quota_error(RuntimeError(message))

    def test_status_code_429(self):
        assert is_quota_error(StatusError("slow down", 429))

    def test_transient_error(self):
        assert not is_quota_error(StatusError("bad gateway", 502))
        assert not is_quota_error(TimeoutError("read timed out"))


class TestRetryAsync:
    """Tests for retry_async."""

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self):
        fn = AsyncMock(
            side_effect=[ConnectionError("reset"), ConnectionError("reset"), "value"]
        )

        with patch("pitchcoach.services.retry.asyncio.sleep", new=AsyncMock()):
            result = await retry_async(fn, label="deck-agent")

        assert result == "value"
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_quota_error_stops_after_one_call(self):
        fn = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        with patch("pitchcoach.services.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            with pytest.raises(QuotaExceededError) as exc_info:
                await retry_async(fn, label="deck-agent")

        assert fn.await_count == 1
        mock_sleep.assert_not_awaited()
        assert str(exc_info.value) == "deck-agent hit a provider quota: quota exceeded"

    @pytest.mark.asyncio
    async def test_exhaustion_raises_with_last_error(self):
        fn = AsyncMock(
            side_effect=[ValueError("first"), ValueError("second"), ValueError("third")]
        )

        with patch("pitchcoach.services.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RetryExhaustedError) as exc_info:
                await retry_async(fn, label="combine-agent", attempts=3)

        assert fn.await_count == 3
        assert exc_info.value.attempts == 3
        assert str(exc_info.value.cause) == "third"
        assert str(exc_info.value) == "combine-agent failed after 3 attempts: third"

    @pytest.mark.asyncio
    async def test_linear_backoff(self):
        fn = AsyncMock(side_effect=ConnectionError("reset"))

        with patch("pitchcoach.services.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            with pytest.raises(RetryExhaustedError):
                await retry_async(fn, label="llm", attempts=4, base_delay=0.5)

        assert [c.args[0] for c in mock_sleep.await_args_list] == [0.5, 1.0, 1.5]

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_sleep(self):
        fn = AsyncMock(side_effect=ConnectionError("reset"))

        with patch("pitchcoach.services.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            with pytest.raises(RetryExhaustedError):
                await retry_async(fn, label="llm", attempts=1)

        assert fn.await_count == 1
        mock_sleep.assert_not_awaited()
