"""Tests for the transient-failure retry policy."""

import pytest
from unittest.mock import AsyncMock

from config.exceptions import LLMError, LLMOverloadedError


class _Busy(Exception):
    def __init__(self, status):
        super().__init__(f"status {status}")
        self.status = status


class TestIsTransientError:
    @pytest.mark.parametrize("status", [500, 503, 529])
    def test_busy_status_codes(self, status):
        from tools.retry import is_transient_error
        assert is_transient_error(LLMError("busy", status_code=status))
        assert is_transient_error(_Busy(status))

    def test_overloaded_message(self):
        from tools.retry import is_transient_error
        assert is_transient_error(RuntimeError("Server Overloaded, try later"))

    def test_client_error_not_transient(self):
        from tools.retry import is_transient_error
        assert not is_transient_error(LLMError("bad request", status_code=400))
        assert not is_transient_error(ValueError("nope"))


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_two_transient_failures_then_success(self):
        from tools.retry import call_with_retry

        operation = AsyncMock(side_effect=[
            LLMOverloadedError(status_code=529),
            LLMOverloadedError(status_code=503),
            "完成",
        ])
        sleep = AsyncMock()

        result = await call_with_retry(operation, retries=3, base_delay=2.0, sleep=sleep)

        assert result == "完成"
        assert operation.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_non_transient_failure_propagates_immediately(self):
        from tools.retry import call_with_retry

        error = LLMError("invalid prompt", status_code=400)
        operation = AsyncMock(side_effect=error)
        sleep = AsyncMock()

        with pytest.raises(LLMError) as exc_info:
            await call_with_retry(operation, sleep=sleep)

        assert exc_info.value is error
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_budget_exhaustion_reraises_last_failure(self):
        from tools.retry import call_with_retry

        operation = AsyncMock(side_effect=LLMOverloadedError(status_code=529))
        sleep = AsyncMock()

        with pytest.raises(LLMOverloadedError):
            await call_with_retry(operation, retries=3, base_delay=1.0, sleep=sleep)

        assert operation.await_count == 4
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_zero_retries_calls_once(self):
        from tools.retry import call_with_retry

        operation = AsyncMock(side_effect=LLMOverloadedError(status_code=529))
        with pytest.raises(LLMOverloadedError):
            await call_with_retry(operation, retries=0, sleep=AsyncMock())
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_success_first_time_does_not_sleep(self):
        from tools.retry import call_with_retry

        sleep = AsyncMock()
        assert await call_with_retry(AsyncMock(return_value=42), sleep=sleep) == 42
        sleep.assert_not_awaited()
