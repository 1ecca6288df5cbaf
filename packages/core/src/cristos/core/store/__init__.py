"""Cristos Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from .message_store import SqliteMessageStore
from .project_store import SqliteProjectStore
from .sqlite_init import init_db, verify_wal_mode
from .state_store import SqliteStateStore
from .user_store import SqliteUserStore
from .voice_store import SqliteVoiceSessionStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        artifacts_dir: Path,
    ) -> None:
        self.conn = conn
        self.artifacts_dir = artifacts_dir
        self.user_store = SqliteUserStore(conn)
        self.state_store = SqliteStateStore(conn)
        self.project_store = SqliteProjectStore(conn)
        self.message_store = SqliteMessageStore(conn)
        self.voice_store = SqliteVoiceSessionStore(conn)


async def create_store_group(
    db_path: str,
    artifacts_dir: str | Path,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        artifacts_dir: Artifact 文件存储目录（封面图等）

    Returns:
        StoreGroup 实例
    """
    artifacts_path = Path(artifacts_dir)
    artifacts_path.mkdir(parents=True, exist_ok=True)

    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, artifacts_dir=artifacts_path)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteUserStore",
    "SqliteStateStore",
    "SqliteProjectStore",
    "SqliteMessageStore",
    "SqliteVoiceSessionStore",
    "init_db",
    "verify_wal_mode",
]
