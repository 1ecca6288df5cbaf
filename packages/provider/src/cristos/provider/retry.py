"""RetryPolicy -- 可注入的重试策略

最大尝试次数、退避函数、可重试判定、单次尝试超时均可配置；
sleep 可替换，测试中无需真实等待。
默认退避为封顶指数退避：普通失败 2^n 秒，限流时放宽到 3^n 秒。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import structlog

from .exceptions import ProviderError, RateLimitedError, RetryExhaustedError

log = structlog.get_logger()

T = TypeVar("T")

BackoffFn = Callable[[int, Exception], float]
RetryablePredicate = Callable[[Exception], bool]

# 默认退避上限（秒）
DEFAULT_BACKOFF_CAP_S = 30.0

# 默认尝试次数
MODEL_CALL_MAX_ATTEMPTS = 5
TRANSCRIPTION_MAX_ATTEMPTS = 3


def exponential_backoff(
    base: float = 2.0,
    rate_limit_base: float = 3.0,
    unit_s: float = 1.0,
    cap_s: float = DEFAULT_BACKOFF_CAP_S,
) -> BackoffFn:
    """构造封顶指数退避函数

    Args:
        base: 普通失败的倍数
        rate_limit_base: 限流时的倍数
        unit_s: 时间单位（秒）
        cap_s: 单次等待上限（秒）

    Returns:
        backoff(attempt, error) -> 等待秒数，attempt 从 1 开始
    """

    def backoff(attempt: int, error: Exception) -> float:
        multiplier = rate_limit_base if isinstance(error, RateLimitedError) else base
        return min(cap_s, unit_s * multiplier**attempt)

    return backoff


def default_is_retryable(error: Exception) -> bool:
    """默认可重试判定：ProviderError 看 recoverable，超时与连接错误可重试"""
    if isinstance(error, ProviderError):
        return error.recoverable
    return isinstance(error, (TimeoutError, ConnectionError, httpx.TransportError))


class RetryPolicy:
    """重试策略

    attempt_timeout_s 通过 asyncio.wait_for 限制单次尝试时长，
    长耗时调用不会无限阻塞。
    """

    def __init__(
        self,
        max_attempts: int = MODEL_CALL_MAX_ATTEMPTS,
        backoff: BackoffFn | None = None,
        is_retryable: RetryablePredicate = default_is_retryable,
        attempt_timeout_s: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.backoff = backoff or exponential_backoff()
        self.is_retryable = is_retryable
        self.attempt_timeout_s = attempt_timeout_s
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        op_name: str = "operation",
    ) -> tuple[T, int]:
        """按策略执行操作

        Args:
            operation: 无参协程工厂，每次尝试调用一次
            op_name: 日志中的操作名

        Returns:
            (结果, 实际尝试次数)

        Raises:
            RetryExhaustedError: 可重试错误耗尽全部尝试
            Exception: 不可重试的错误原样抛出
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                if self.attempt_timeout_s is not None:
                    result = await asyncio.wait_for(operation(), self.attempt_timeout_s)
                else:
                    result = await operation()
                if attempt > 1:
                    log.info("retry_succeeded", operation=op_name, attempt=attempt)
                return result, attempt
            except Exception as e:
                retryable = self.is_retryable(e)
                log.warning(
                    "retry_attempt_failed",
                    operation=op_name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    retryable=retryable,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                if not retryable:
                    raise
                if attempt == self.max_attempts:
                    raise RetryExhaustedError(self.max_attempts, e) from e
                await self._sleep(self.backoff(attempt, e))

        raise RuntimeError(f"{op_name}: retry loop ended without result")
