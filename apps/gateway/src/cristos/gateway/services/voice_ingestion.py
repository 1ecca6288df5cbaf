"""VoiceIngestion -- 语音输入转写并送入组装引擎

会话状态：recording -> processing -> completed | failed。
转写文本为空视为失败；转写成功后以转写文本驱动一轮组装。
"""

import time

import structlog
from cristos.core.config import MAX_AUDIO_BYTES
from cristos.core.models import VoiceProcessingStatus
from cristos.core.store.protocols import VoiceSessionStore
from cristos.provider import RetryingTranscriptionClient, TranscriptionConfig
from pydantic import BaseModel

from .assembly_engine import AssemblyEngine, AssemblyTurnResult, normalize_conversation_id

log = structlog.get_logger()

VOICE_FAILURE_MESSAGE = "Sorry, I could not understand the audio. Please try again."


class VoiceProcessingResult(BaseModel):
    """一次转写的结果"""

    success: bool
    session_id: str | None = None
    transcription: str | None = None
    confidence: float | None = None
    language: str | None = None
    processing_time_ms: int = 0
    error: str | None = None


class VoiceTurnResult(BaseModel):
    """语音驱动的一轮组装结果"""

    voice: VoiceProcessingResult
    turn: AssemblyTurnResult | None = None


class VoiceIngestionService:
    """语音输入服务"""

    def __init__(
        self,
        transcriber: RetryingTranscriptionClient,
        voice_store: VoiceSessionStore,
        engine: AssemblyEngine,
        max_audio_bytes: int = MAX_AUDIO_BYTES,
    ) -> None:
        self._transcriber = transcriber
        self._sessions = voice_store
        self._engine = engine
        self._max_audio_bytes = max_audio_bytes

    @property
    def default_config(self) -> TranscriptionConfig:
        return self._transcriber.default_config

    async def transcribe(
        self,
        user_id: str,
        conversation_id: str | None,
        audio: bytes,
        config: TranscriptionConfig | None = None,
    ) -> VoiceProcessingResult:
        """创建语音会话并转写

        Returns:
            VoiceProcessingResult；失败时会话置为 failed 并记录原因
        """
        conversation_id = normalize_conversation_id(conversation_id)
        session = await self._sessions.create_session(user_id, conversation_id, len(audio))
        log.info(
            "voice_session_created",
            voice_session_id=session.session_id,
            user_id=user_id,
            audio_bytes=len(audio),
        )

        if not audio:
            return await self._fail(session.session_id, "empty_audio", 0)
        if len(audio) > self._max_audio_bytes:
            return await self._fail(session.session_id, "audio_too_large", 0)

        await self._sessions.update_session(session.session_id, VoiceProcessingStatus.PROCESSING)
        start = time.monotonic()
        outcome = await self._transcriber.transcribe(audio, config)
        elapsed_ms = outcome.processing_time_ms or int((time.monotonic() - start) * 1000)

        if not outcome.success:
            return await self._fail(
                session.session_id, "transcription_failed", elapsed_ms, detail=outcome.error
            )
        text = outcome.text.strip()
        if not text:
            return await self._fail(
                session.session_id, "transcription_failed", elapsed_ms, detail="empty transcription"
            )

        await self._sessions.update_session(
            session.session_id,
            VoiceProcessingStatus.COMPLETED,
            transcription=text,
            processing_time_ms=elapsed_ms,
            confidence=outcome.confidence,
            language=outcome.language,
        )
        log.info(
            "voice_transcribed",
            voice_session_id=session.session_id,
            processing_time_ms=elapsed_ms,
            attempts=outcome.attempts,
            chars=len(text),
        )
        return VoiceProcessingResult(
            success=True,
            session_id=session.session_id,
            transcription=text,
            confidence=outcome.confidence,
            language=outcome.language,
            processing_time_ms=elapsed_ms,
        )

    async def process_voice_turn(
        self,
        user_id: str,
        conversation_id: str | None,
        audio: bytes,
        config: TranscriptionConfig | None = None,
    ) -> VoiceTurnResult:
        """转写后以文本驱动一轮组装；转写失败时不调用引擎"""
        voice = await self.transcribe(user_id, conversation_id, audio, config)
        if not voice.success or voice.transcription is None:
            return VoiceTurnResult(voice=voice)
        turn = await self._engine.process_turn(user_id, conversation_id, voice.transcription)
        return VoiceTurnResult(voice=voice, turn=turn)

    async def _fail(
        self,
        session_id: str,
        reason: str,
        elapsed_ms: int,
        detail: str | None = None,
    ) -> VoiceProcessingResult:
        await self._sessions.update_session(
            session_id,
            VoiceProcessingStatus.FAILED,
            error_message=detail or reason,
            processing_time_ms=elapsed_ms,
        )
        log.warning(
            "voice_processing_failed",
            voice_session_id=session_id,
            reason=reason,
            detail=detail,
        )
        return VoiceProcessingResult(
            success=False,
            session_id=session_id,
            processing_time_ms=elapsed_ms,
            error=reason,
        )
