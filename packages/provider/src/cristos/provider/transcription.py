"""WhisperTranscriptionClient -- TranscriptionClient 的 LiteLLM 实现

通过 litellm.atranscription() 调用 Whisper。边界处与音频格式无关：
原始字节按 (filename, bytes) 上传，格式由服务端根据文件名推断。
HTTP 状态映射为可读错误：401 密钥无效、413 文件过大、429 限流、5xx 服务不可用。
"""

import math
import time

import structlog
from litellm import atranscription

from .client import _is_connection_error, is_rate_limit_error
from .exceptions import (
    ProviderError,
    ProxyUnreachableError,
    RateLimitedError,
    TranscriptionError,
)
from .models import TranscriptionConfig, TranscriptionResult

log = structlog.get_logger()

SUPPORTED_FORMATS: tuple[str, ...] = ("mp3", "mp4", "mpeg", "mpga", "m4a", "wav", "webm")


def _field(obj, name: str):
    """兼容对象属性与 dict 两种响应形态"""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _estimate_confidence(segments) -> float | None:
    """由分段平均 logprob 估算置信度（0~1）"""
    if not segments:
        return None
    logprobs = [
        value
        for value in (_field(segment, "avg_logprob") for segment in segments)
        if isinstance(value, int | float)
    ]
    if not logprobs:
        return None
    return round(min(1.0, max(0.0, math.exp(sum(logprobs) / len(logprobs)))), 4)


def map_transcription_error(e: Exception) -> ProviderError:
    """把上游异常映射为 provider 异常"""
    status = getattr(e, "status_code", None)
    if status == 429 or is_rate_limit_error(e):
        return RateLimitedError(f"转写限流: {e}")
    if status == 401:
        return TranscriptionError("Invalid API key for transcription", 401, recoverable=False)
    if status == 413:
        return TranscriptionError("Audio file too large", 413, recoverable=False)
    if isinstance(status, int) and status >= 500:
        return TranscriptionError("Transcription service unavailable", status)
    if _is_connection_error(e):
        return ProxyUnreachableError(proxy_url="transcription", original_error=e)
    return TranscriptionError(f"Transcription failed: {e}", status)


class WhisperTranscriptionClient:
    """Whisper 转写客户端"""

    def __init__(
        self,
        proxy_base_url: str = "",
        proxy_api_key: str = "",
        timeout_s: int = 60,
    ) -> None:
        self._proxy_base_url = proxy_base_url.rstrip("/")
        self._proxy_api_key = proxy_api_key
        self._timeout_s = timeout_s

    async def transcribe(
        self,
        audio: bytes,
        config: TranscriptionConfig | None = None,
    ) -> TranscriptionResult:
        """转写一段音频

        Args:
            audio: 原始音频字节
            config: 模型/语言/温度

        Returns:
            TranscriptionResult

        Raises:
            TranscriptionError: 空音频或上游返回错误
            RateLimitedError: 上游限流
            ProxyUnreachableError: 连接失败
        """
        config = config or TranscriptionConfig()
        if not audio:
            raise TranscriptionError("Audio payload is empty", recoverable=False)

        start_time = time.monotonic()
        call_kwargs = {
            "model": config.model,
            "file": (config.filename, audio),
            "temperature": config.temperature,
            "response_format": "verbose_json",
            "timeout": self._timeout_s,
        }
        if config.language:
            call_kwargs["language"] = config.language
        if config.prompt:
            call_kwargs["prompt"] = config.prompt
        if self._proxy_base_url:
            call_kwargs["api_base"] = self._proxy_base_url
            call_kwargs["api_key"] = self._proxy_api_key or "no-key"

        try:
            response = await atranscription(**call_kwargs)
        except Exception as e:
            log.error(
                "transcription_call_failed",
                model=config.model,
                audio_bytes=len(audio),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise map_transcription_error(e) from e

        processing_time_ms = int((time.monotonic() - start_time) * 1000)
        text = (_field(response, "text") or "").strip()
        duration = _field(response, "duration")
        result = TranscriptionResult(
            text=text,
            confidence=_estimate_confidence(_field(response, "segments")),
            language=_field(response, "language") or config.language,
            duration_ms=int(float(duration) * 1000) if duration is not None else None,
            processing_time_ms=processing_time_ms,
        )
        log.info(
            "transcription_completed",
            model=config.model,
            audio_bytes=len(audio),
            text_length=len(text),
            processing_time_ms=processing_time_ms,
        )
        return result
