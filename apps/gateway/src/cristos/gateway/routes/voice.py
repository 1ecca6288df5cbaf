"""语音输入路由

POST /api/assembly/voice: 原始音频请求体，转写后驱动一轮组装。
GET /api/voice-sessions/{session_id}: 查询语音会话状态。
"""

from cristos.core.models import VoiceSession
from cristos.provider import TranscriptionConfig
from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import JSONResponse

from ..deps import get_store_group, get_voice_ingestion
from ..services.voice_ingestion import (
    VOICE_FAILURE_MESSAGE,
    VoiceIngestionService,
    VoiceTurnResult,
)
from .errors import error_response

router = APIRouter()

# Content-Type -> 上传文件扩展名
_CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/webm": "webm",
    "video/mp4": "mp4",
}

_VOICE_ERROR_STATUS: dict[str, int] = {
    "empty_audio": 422,
    "audio_too_large": 413,
    "transcription_failed": 503,
}


def _audio_filename(content_type: str | None) -> str | None:
    if not content_type:
        return None
    ext = _CONTENT_TYPE_EXTENSIONS.get(content_type.split(";")[0].strip().lower())
    return f"audio.{ext}" if ext else None


@router.post("/api/assembly/voice", response_model=VoiceTurnResult)
async def process_voice(
    request: Request,
    user_id: str = Query(description="用户 ID"),
    conversation_id: str | None = Query(default=None, description="对话 ID"),
    language: str | None = Query(default=None, description="语言提示，例如 en"),
    service: VoiceIngestionService = Depends(get_voice_ingestion),
):
    """接收原始音频，转写并处理一轮"""
    audio = await request.body()

    config: TranscriptionConfig = service.default_config
    updates: dict = {}
    if language:
        updates["language"] = language
    if filename := _audio_filename(request.headers.get("content-type")):
        updates["filename"] = filename
    if updates:
        config = config.model_copy(update=updates)

    result = await service.process_voice_turn(user_id, conversation_id, audio, config)
    if not result.voice.success:
        content = result.model_dump(mode="json")
        content["message"] = VOICE_FAILURE_MESSAGE
        return JSONResponse(
            status_code=_VOICE_ERROR_STATUS.get(result.voice.error or "", 500),
            content=content,
        )
    return result


@router.get("/api/voice-sessions/{session_id}", response_model=VoiceSession)
async def get_voice_session(
    session_id: str,
    store_group=Depends(get_store_group),
):
    """查询语音会话（供调用方轮询）"""
    session = await store_group.voice_store.get_session(session_id)
    if session is None:
        return error_response(
            404, "VOICE_SESSION_NOT_FOUND", f"Voice session not found: {session_id}"
        )
    return session
