"""RetryPolicy 单元测试

sleep 注入为记录函数，不真实等待。
"""

import asyncio

import pytest
from cristos.provider.exceptions import (
    ProviderError,
    RateLimitedError,
    RetryExhaustedError,
)
from cristos.provider.retry import RetryPolicy, default_is_retryable, exponential_backoff


class _Flaky:
    """前 n 次失败，之后返回 "ok" """

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or ProviderError("temporary")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def _policy(max_attempts: int, sleeps: list[float], **kwargs) -> RetryPolicy:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RetryPolicy(max_attempts=max_attempts, sleep=record_sleep, **kwargs)


class TestExponentialBackoff:
    """退避函数"""

    def test_doubles_per_attempt(self):
        backoff = exponential_backoff()
        error = ProviderError("x")
        assert [backoff(n, error) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_rate_limit_widens_backoff(self):
        backoff = exponential_backoff()
        assert backoff(2, RateLimitedError()) == 9.0

    def test_capped(self):
        backoff = exponential_backoff(cap_s=5.0)
        assert backoff(10, ProviderError("x")) == 5.0


class TestDefaultIsRetryable:
    """可重试判定"""

    def test_provider_error_uses_recoverable(self):
        assert default_is_retryable(ProviderError("x", recoverable=True)) is True
        assert default_is_retryable(ProviderError("x", recoverable=False)) is False

    def test_timeouts_and_connection_errors(self):
        assert default_is_retryable(TimeoutError()) is True
        assert default_is_retryable(ConnectionError()) is True

    def test_programming_errors_not_retried(self):
        assert default_is_retryable(ValueError("bad")) is False


class TestRetryPolicyRun:
    """run() 行为"""

    async def test_success_first_attempt(self):
        sleeps: list[float] = []
        result, attempts = await _policy(5, sleeps).run(_Flaky(0))
        assert (result, attempts) == ("ok", 1)
        assert sleeps == []

    async def test_succeeds_after_failures(self):
        """失败两次后成功：共 3 次尝试，退避 2s、4s"""
        sleeps: list[float] = []
        op = _Flaky(2)
        result, attempts = await _policy(5, sleeps).run(op)
        assert (result, attempts) == ("ok", 3)
        assert op.calls == 3
        assert sleeps == [2.0, 4.0]

    async def test_exhausted_raises_with_last_error(self):
        sleeps: list[float] = []
        op = _Flaky(10)
        with pytest.raises(RetryExhaustedError) as exc_info:
            await _policy(3, sleeps).run(op)
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is op.error
        assert op.calls == 3
        # 最后一次失败后不再等待
        assert len(sleeps) == 2

    async def test_non_retryable_raised_immediately(self):
        sleeps: list[float] = []
        op = _Flaky(5, error=ValueError("bad request"))
        with pytest.raises(ValueError):
            await _policy(5, sleeps).run(op)
        assert op.calls == 1
        assert sleeps == []

    async def test_rate_limit_uses_wider_backoff(self):
        sleeps: list[float] = []
        await _policy(5, sleeps).run(_Flaky(2, error=RateLimitedError()))
        assert sleeps == [3.0, 9.0]

    async def test_attempt_timeout(self):
        """单次尝试超时按可重试错误处理"""
        sleeps: list[float] = []
        calls = 0

        async def slow() -> str:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(1)
            return "done"

        result, attempts = await _policy(3, sleeps, attempt_timeout_s=0.01).run(slow)
        assert (result, attempts) == ("done", 2)

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
