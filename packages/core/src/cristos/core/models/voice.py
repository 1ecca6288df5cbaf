"""VoiceSession Domain Model -- 一次语音转写的会话记录"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .enums import VoiceProcessingStatus


class VoiceSession(BaseModel):
    """语音会话

    外部调用方可轮询 processing_status；放弃会话即视为取消。
    """

    session_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str = Field(description="所属用户")
    conversation_id: str | None = Field(default=None)
    processing_status: VoiceProcessingStatus = Field(default=VoiceProcessingStatus.RECORDING)
    transcription: str | None = Field(default=None)
    error_message: str | None = Field(default=None)
    processing_time_ms: int | None = Field(default=None)
    confidence: float | None = Field(default=None)
    language: str | None = Field(default=None)
    audio_bytes: int = Field(default=0, description="音频大小")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
