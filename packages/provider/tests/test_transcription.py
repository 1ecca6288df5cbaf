"""WhisperTranscriptionClient 单元测试

Mock litellm.atranscription()，验证调用参数、结果解析与 HTTP 状态映射。
"""

from unittest.mock import patch

import pytest
from cristos.provider.exceptions import (
    ProviderError,
    ProxyUnreachableError,
    RateLimitedError,
    TranscriptionError,
)
from cristos.provider.models import TranscriptionConfig, TranscriptionResult
from cristos.provider.transcription import WhisperTranscriptionClient, map_transcription_error


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def _verbose_json(text: str = " Plan a garden party ", **extra) -> dict:
    response = {
        "text": text,
        "language": "english",
        "duration": 2.5,
        "segments": [{"avg_logprob": -0.1}, {"avg_logprob": -0.3}],
    }
    response.update(extra)
    return response


@pytest.fixture
def client():
    return WhisperTranscriptionClient(proxy_base_url="http://localhost:4000/", proxy_api_key="sk-test")


class TestTranscribe:
    """transcribe() 方法测试"""

    @patch("cristos.provider.transcription.atranscription")
    async def test_successful_transcription(self, mock_transcribe, client):
        mock_transcribe.return_value = _verbose_json()

        result = await client.transcribe(b"\x00\x01audio")

        assert isinstance(result, TranscriptionResult)
        assert result.text == "Plan a garden party"
        assert result.language == "english"
        assert result.duration_ms == 2500
        # exp(-0.2)
        assert result.confidence == 0.8187
        assert result.processing_time_ms >= 0

    @patch("cristos.provider.transcription.atranscription")
    async def test_call_kwargs(self, mock_transcribe, client):
        mock_transcribe.return_value = _verbose_json()

        await client.transcribe(
            b"audio",
            TranscriptionConfig(language="fr", filename="clip.webm", prompt="project names"),
        )

        kwargs = mock_transcribe.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"] == ("clip.webm", b"audio")
        assert kwargs["language"] == "fr"
        assert kwargs["prompt"] == "project names"
        assert kwargs["response_format"] == "verbose_json"
        assert kwargs["api_base"] == "http://localhost:4000"
        assert kwargs["api_key"] == "sk-test"

    @patch("cristos.provider.transcription.atranscription")
    async def test_no_language_hint(self, mock_transcribe):
        mock_transcribe.return_value = _verbose_json()

        await WhisperTranscriptionClient().transcribe(b"audio", TranscriptionConfig(language=None))

        kwargs = mock_transcribe.call_args.kwargs
        assert "language" not in kwargs
        assert "api_base" not in kwargs

    @patch("cristos.provider.transcription.atranscription")
    async def test_missing_segments_gives_no_confidence(self, mock_transcribe, client):
        mock_transcribe.return_value = {"text": "hi"}

        result = await client.transcribe(b"audio")

        assert result.confidence is None
        assert result.duration_ms is None
        assert result.language == "en"

    @patch("cristos.provider.transcription.atranscription")
    async def test_empty_audio_rejected_without_call(self, mock_transcribe, client):
        with pytest.raises(TranscriptionError) as exc_info:
            await client.transcribe(b"")
        assert exc_info.value.recoverable is False
        mock_transcribe.assert_not_called()

    @patch("cristos.provider.transcription.atranscription")
    async def test_upstream_error_mapped(self, mock_transcribe, client):
        mock_transcribe.side_effect = _StatusError("Service Unavailable", 503)

        with pytest.raises(TranscriptionError) as exc_info:
            await client.transcribe(b"audio")
        assert str(exc_info.value) == "Transcription service unavailable"
        assert exc_info.value.recoverable is True


class TestMapTranscriptionError:
    """HTTP 状态映射"""

    def test_rate_limited(self):
        assert isinstance(map_transcription_error(_StatusError("slow", 429)), RateLimitedError)

    @pytest.mark.parametrize(
        ("status", "message"),
        [
            (401, "Invalid API key for transcription"),
            (413, "Audio file too large"),
        ],
    )
    def test_non_recoverable_statuses(self, status, message):
        error = map_transcription_error(_StatusError("x", status))
        assert isinstance(error, TranscriptionError)
        assert str(error) == message
        assert error.status_code == status
        assert error.recoverable is False

    def test_server_error_recoverable(self):
        error = map_transcription_error(_StatusError("x", 502))
        assert error.recoverable is True
        assert error.status_code == 502

    def test_connection_error(self):
        error = map_transcription_error(ConnectionError("refused"))
        assert isinstance(error, ProxyUnreachableError)

    def test_unknown_error(self):
        error = map_transcription_error(ValueError("weird"))
        assert isinstance(error, ProviderError)
        assert "weird" in str(error)
