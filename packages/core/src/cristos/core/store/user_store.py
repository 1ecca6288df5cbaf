"""UserStore SQLite 实现 -- 身份存储

创建组装状态前通过 user_exists 校验用户。
"""

from datetime import UTC, datetime

import aiosqlite


class SqliteUserStore:
    """IdentityStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def user_exists(self, user_id: str) -> bool:
        """用户是否存在"""
        cursor = await self._conn.execute(
            "SELECT 1 FROM users WHERE user_id = ?",
            (user_id,),
        )
        return await cursor.fetchone() is not None

    async def create_user(
        self,
        user_id: str,
        display_name: str = "",
        email: str | None = None,
    ) -> bool:
        """注册用户（已存在时忽略）

        Returns:
            True 如果新建了用户
        """
        cursor = await self._conn.execute(
            """
            INSERT OR IGNORE INTO users (user_id, display_name, email, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, display_name, email, datetime.now(UTC).isoformat()),
        )
        await self._conn.commit()
        return cursor.rowcount > 0
