"""集成测试共享 fixture

走完整 lifespan：echo 模式的模型后端，真实 SQLite，封面图关闭。
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def integration_app(tmp_db_path: Path, tmp_artifacts_dir: Path, monkeypatch):
    """集成测试用 FastAPI app（lifespan 已启动）"""
    monkeypatch.setenv("CRISTOS_DB_PATH", str(tmp_db_path))
    monkeypatch.setenv("CRISTOS_ARTIFACTS_DIR", str(tmp_artifacts_dir))
    monkeypatch.setenv("CRISTOS_LLM_MODE", "echo")
    monkeypatch.setenv("CRISTOS_COVER_IMAGES", "off")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from cristos.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
