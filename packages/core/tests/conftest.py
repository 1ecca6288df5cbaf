"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from cristos.core.models import AssemblyState
from cristos.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_db(core_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from cristos.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(core_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """已登记用户 u1 的 StoreGroup"""
    group = await create_store_group(str(tmp_path / "stores.db"), tmp_path / "artifacts")
    await group.user_store.create_user("u1", "User One")
    yield group
    await group.conn.close()


@pytest.fixture
def fresh_state() -> AssemblyState:
    """空白组装状态"""
    return AssemblyState(state_id="01JSTATE000000000000000001", user_id="u1")
