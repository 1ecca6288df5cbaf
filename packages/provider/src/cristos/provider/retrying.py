"""带重试的客户端包装

RetryingModelClient / RetryingTranscriptionClient 把底层客户端与 RetryPolicy 组合，
对外返回 CompletionOutcome / TranscriptionOutcome，从不抛异常。
"""

from typing import Protocol

import structlog

from .exceptions import RateLimitedError, RetryExhaustedError
from .models import (
    CompletionOutcome,
    LLMConfig,
    ModelCallResult,
    TranscriptionConfig,
    TranscriptionOutcome,
    TranscriptionResult,
)
from .retry import MODEL_CALL_MAX_ATTEMPTS, TRANSCRIPTION_MAX_ATTEMPTS, RetryPolicy

log = structlog.get_logger()


class CompletionBackend(Protocol):
    """completion 后端（LiteLLMClient / EchoMessageAdapter / 测试替身）"""

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig | None = None,
    ) -> ModelCallResult: ...


class TranscriptionBackend(Protocol):
    """转写后端"""

    async def transcribe(
        self,
        audio: bytes,
        config: TranscriptionConfig | None = None,
    ) -> TranscriptionResult: ...


def _unwrap(error: Exception) -> Exception:
    if isinstance(error, RetryExhaustedError):
        return error.last_error
    return error


class RetryingModelClient:
    """LanguageModelClient：completion + 重试策略"""

    def __init__(
        self,
        backend: CompletionBackend,
        policy: RetryPolicy | None = None,
        default_config: LLMConfig | None = None,
    ) -> None:
        self._backend = backend
        self._policy = policy or RetryPolicy(max_attempts=MODEL_CALL_MAX_ATTEMPTS)
        self._default_config = default_config or LLMConfig()

    @property
    def default_config(self) -> LLMConfig:
        return self._default_config

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig | None = None,
    ) -> CompletionOutcome:
        """带重试的 completion

        Returns:
            CompletionOutcome（success=False 时 error 给出最后一次失败原因）
        """
        config = config or self._default_config
        try:
            result, attempts = await self._policy.run(
                lambda: self._backend.complete(messages, config),
                op_name="model_call",
            )
        except Exception as e:
            cause = _unwrap(e)
            attempts = e.attempts if isinstance(e, RetryExhaustedError) else 1
            log.error(
                "model_call_failed",
                model=config.model,
                attempts=attempts,
                error_type=type(cause).__name__,
                error=str(cause),
            )
            return CompletionOutcome(
                success=False,
                error=str(cause),
                attempts=attempts,
                rate_limited=isinstance(cause, RateLimitedError),
            )
        return CompletionOutcome(
            success=True,
            text=result.content,
            usage=result.token_usage,
            attempts=attempts,
        )


class RetryingTranscriptionClient:
    """TranscriptionClient：转写 + 重试策略"""

    def __init__(
        self,
        backend: TranscriptionBackend,
        policy: RetryPolicy | None = None,
        default_config: TranscriptionConfig | None = None,
    ) -> None:
        self._backend = backend
        self._policy = policy or RetryPolicy(max_attempts=TRANSCRIPTION_MAX_ATTEMPTS)
        self._default_config = default_config or TranscriptionConfig()

    @property
    def default_config(self) -> TranscriptionConfig:
        return self._default_config

    async def transcribe(
        self,
        audio: bytes,
        config: TranscriptionConfig | None = None,
    ) -> TranscriptionOutcome:
        """带重试的转写，失败时返回 success=False"""
        config = config or self._default_config
        try:
            result, attempts = await self._policy.run(
                lambda: self._backend.transcribe(audio, config),
                op_name="transcription",
            )
        except Exception as e:
            cause = _unwrap(e)
            attempts = e.attempts if isinstance(e, RetryExhaustedError) else 1
            log.error(
                "transcription_failed",
                attempts=attempts,
                error_type=type(cause).__name__,
                error=str(cause),
            )
            return TranscriptionOutcome(success=False, error=str(cause), attempts=attempts)
        return TranscriptionOutcome(
            success=True,
            text=result.text,
            confidence=result.confidence,
            language=result.language,
            duration_ms=result.duration_ms,
            processing_time_ms=result.processing_time_ms,
            attempts=attempts,
        )
