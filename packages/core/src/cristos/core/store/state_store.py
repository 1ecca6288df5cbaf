"""StateStore SQLite 实现

assembly_states 表保存完整的 AssemblyState（state_data JSON），
user_id / conversation_id / project_id / status 冗余为列用于查询与条件更新。
"""

import json
from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..models.enums import AssemblyStatus
from ..models.state import AssemblyState

_COLUMNS = (
    "state_id, user_id, conversation_id, project_id, status, current_step, "
    "state_data, created_at, updated_at"
)


class SqliteStateStore:
    """StateStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_state(
        self,
        conversation_id: str | None,
        user_id: str,
    ) -> AssemblyState | None:
        """按 (conversation_id, user_id) 精确查询

        conversation_id 为 None 时查询该用户无对话归属的最新状态。
        """
        if conversation_id is None:
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM assembly_states
                WHERE user_id = ? AND conversation_id IS NULL
                ORDER BY updated_at DESC, rowid DESC LIMIT 1
                """,
                (user_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM assembly_states
                WHERE user_id = ? AND conversation_id = ?
                ORDER BY updated_at DESC, rowid DESC LIMIT 1
                """,
                (user_id, conversation_id),
            )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_state(row)

    async def get_latest_for_user(
        self,
        user_id: str,
        status: AssemblyStatus | None = AssemblyStatus.IN_PROGRESS,
    ) -> AssemblyState | None:
        """按用户查询最新状态，不限对话（对话查询未命中时的回退）

        status 为 None 时不过滤状态。
        """
        if status is None:
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM assembly_states
                WHERE user_id = ?
                ORDER BY updated_at DESC, rowid DESC LIMIT 1
                """,
                (user_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM assembly_states
                WHERE user_id = ? AND status = ?
                ORDER BY updated_at DESC, rowid DESC LIMIT 1
                """,
                (user_id, status.value),
            )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_state(row)

    async def get_state_by_id(self, state_id: str) -> AssemblyState | None:
        """根据 state_id 查询"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM assembly_states WHERE state_id = ?",
            (state_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_state(row)

    async def get_project_id(self, state_id: str) -> str | None:
        """只读取 project_id 列（提交前的前置条件复查）"""
        cursor = await self._conn.execute(
            "SELECT project_id FROM assembly_states WHERE state_id = ?",
            (state_id,),
        )
        row = await cursor.fetchone()
        return None if row is None else row[0]

    async def create_state(
        self,
        user_id: str,
        conversation_id: str | None = None,
    ) -> AssemblyState:
        """创建新的组装状态"""
        state = AssemblyState(
            state_id=str(ULID()),
            user_id=user_id,
            conversation_id=conversation_id,
        )
        await self._conn.execute(
            f"""
            INSERT INTO assembly_states ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                state.state_id,
                state.user_id,
                state.conversation_id,
                state.project_id,
                state.status.value,
                state.current_step.value,
                self._dump_state(state),
                state.created_at.isoformat(),
                state.updated_at.isoformat(),
            ),
        )
        await self._conn.commit()
        return state

    async def update_state(self, state: AssemblyState) -> AssemblyState:
        """整体写回状态（last-write-wins）

        已落库的 project_id 不会被覆盖为 NULL，已提交的状态保持 completed。
        """
        state.updated_at = datetime.now(UTC)
        await self._conn.execute(
            """
            UPDATE assembly_states
            SET project_id = COALESCE(project_id, ?),
                status = CASE WHEN project_id IS NOT NULL THEN ? ELSE ? END,
                current_step = ?,
                state_data = ?,
                updated_at = ?
            WHERE state_id = ?
            """,
            (
                state.project_id,
                AssemblyStatus.COMPLETED.value,
                state.status.value,
                state.current_step.value,
                self._dump_state(state),
                state.updated_at.isoformat(),
                state.state_id,
            ),
        )
        await self._conn.commit()
        return state

    async def claim_project_id(self, state_id: str, project_id: str) -> bool:
        """条件写入 project_id（仅当尚未设置），同时置为 completed

        Returns:
            True 如果本次写入生效
        """
        cursor = await self._conn.execute(
            """
            UPDATE assembly_states
            SET project_id = ?, status = ?, updated_at = ?
            WHERE state_id = ? AND project_id IS NULL
            """,
            (
                project_id,
                AssemblyStatus.COMPLETED.value,
                datetime.now(UTC).isoformat(),
                state_id,
            ),
        )
        await self._conn.commit()
        return cursor.rowcount == 1

    @staticmethod
    def _dump_state(state: AssemblyState) -> str:
        return state.model_dump_json(
            include={
                "gathered_project_info",
                "gathered_tasks",
                "gathered_team_members",
                "required_fields",
                "optional_fields",
                "templates_suggested",
                "last_activity_at",
            }
        )

    @staticmethod
    def _row_to_state(row: aiosqlite.Row) -> AssemblyState:
        """将数据库行转换为 AssemblyState 模型"""
        data = json.loads(row[6])
        return AssemblyState(
            state_id=row[0],
            user_id=row[1],
            conversation_id=row[2],
            project_id=row[3],
            status=row[4],
            current_step=row[5],
            created_at=datetime.fromisoformat(row[7]),
            updated_at=datetime.fromisoformat(row[8]),
            **data,
        )
