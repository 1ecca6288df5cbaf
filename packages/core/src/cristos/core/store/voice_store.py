"""VoiceSessionStore SQLite 实现"""

from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..models.enums import VoiceProcessingStatus
from ..models.voice import VoiceSession

_COLUMNS = (
    "session_id, user_id, conversation_id, processing_status, transcription, "
    "error_message, processing_time_ms, confidence, language, audio_bytes, "
    "created_at, updated_at"
)


class SqliteVoiceSessionStore:
    """语音会话的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_session(
        self,
        user_id: str,
        conversation_id: str | None = None,
        audio_bytes: int = 0,
    ) -> VoiceSession:
        """创建语音会话（初始状态 recording）"""
        session = VoiceSession(
            session_id=str(ULID()),
            user_id=user_id,
            conversation_id=conversation_id,
            audio_bytes=audio_bytes,
        )
        await self._conn.execute(
            f"""
            INSERT INTO voice_sessions ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session.session_id,
                session.user_id,
                session.conversation_id,
                session.processing_status.value,
                None,
                None,
                None,
                None,
                None,
                session.audio_bytes,
                session.created_at.isoformat(),
                session.updated_at.isoformat(),
            ),
        )
        await self._conn.commit()
        return session

    async def update_session(
        self,
        session_id: str,
        processing_status: VoiceProcessingStatus,
        *,
        transcription: str | None = None,
        error_message: str | None = None,
        processing_time_ms: int | None = None,
        confidence: float | None = None,
        language: str | None = None,
    ) -> None:
        """更新会话状态与结果（None 字段保持原值）"""
        await self._conn.execute(
            """
            UPDATE voice_sessions
            SET processing_status = ?,
                transcription = COALESCE(?, transcription),
                error_message = COALESCE(?, error_message),
                processing_time_ms = COALESCE(?, processing_time_ms),
                confidence = COALESCE(?, confidence),
                language = COALESCE(?, language),
                updated_at = ?
            WHERE session_id = ?
            """,
            (
                processing_status.value,
                transcription,
                error_message,
                processing_time_ms,
                confidence,
                language,
                datetime.now(UTC).isoformat(),
                session_id,
            ),
        )
        await self._conn.commit()

    async def get_session(self, session_id: str) -> VoiceSession | None:
        """根据 session_id 查询"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM voice_sessions WHERE session_id = ?",
            (session_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    @staticmethod
    def _row_to_session(row: aiosqlite.Row) -> VoiceSession:
        """将数据库行转换为 VoiceSession 模型"""
        return VoiceSession(
            session_id=row[0],
            user_id=row[1],
            conversation_id=row[2],
            processing_status=row[3],
            transcription=row[4],
            error_message=row[5],
            processing_time_ms=row[6],
            confidence=row[7],
            language=row[8],
            audio_bytes=row[9],
            created_at=datetime.fromisoformat(row[10]),
            updated_at=datetime.fromisoformat(row[11]),
        )
