"""MessageStore SQLite 实现 -- 对话日志（append-only）"""

from datetime import datetime

import aiosqlite
from ulid import ULID

from ..models.enums import MessageRole
from ..models.message import ChatMessage


class SqliteMessageStore:
    """对话日志的 SQLite 实现，按 seq 保证顺序"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_message(
        self,
        conversation_id: str,
        user_id: str,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        """追加一条消息"""
        message = ChatMessage(
            message_id=str(ULID()),
            conversation_id=conversation_id,
            user_id=user_id,
            role=role,
            content=content,
        )
        await self._conn.execute(
            """
            INSERT INTO chat_messages (message_id, conversation_id, user_id, role,
                                       content, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message.message_id,
                message.conversation_id,
                message.user_id,
                message.role.value,
                message.content,
                message.created_at.isoformat(),
            ),
        )
        await self._conn.commit()
        return message

    async def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        """按写入顺序返回对话的全部消息"""
        cursor = await self._conn.execute(
            """
            SELECT message_id, conversation_id, user_id, role, content, created_at
            FROM chat_messages WHERE conversation_id = ? ORDER BY seq
            """,
            (conversation_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_message(row) for row in rows]

    async def count_messages(self, conversation_id: str) -> int:
        """对话消息数"""
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM chat_messages WHERE conversation_id = ?",
            (conversation_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> ChatMessage:
        """将数据库行转换为 ChatMessage 模型"""
        return ChatMessage(
            message_id=row[0],
            conversation_id=row[1],
            user_id=row[2],
            role=row[3],
            content=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )
