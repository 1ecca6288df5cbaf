"""健康检查与可观测性测试

测试内容：
1. GET /health 返回 200 + ok
2. GET /ready 正常时返回 200 + checks 结构
3. GET /ready?profile=llm 探测模型服务
4. GET /ready SQLite 不可用时返回 503
5. 响应头携带 X-Request-ID
"""

from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient


class TestHealthCheck:
    """健康检查"""

    async def test_health_returns_200(self, client: AsyncClient):
        """GET /health 永远返回 200"""
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_ready_returns_200(self, client: AsyncClient):
        """GET /ready 正常时返回 200 + checks 结构"""
        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        assert data["profile"] == "core"
        checks = data["checks"]
        assert checks["sqlite"] == "ok"
        assert checks["artifacts_dir"] == "ok"
        assert isinstance(checks["disk_space_mb"], int)
        assert checks["llm"] == "skipped"

    async def test_ready_llm_profile_echo_mode(self, client: AsyncClient):
        """无 LiteLLM 客户端（echo 模式）时 llm 检查跳过"""
        resp = await client.get("/ready", params={"profile": "llm"})
        assert resp.status_code == 200
        assert resp.json()["checks"]["llm"] == "skipped"

    async def test_ready_llm_unreachable(self, test_app, client: AsyncClient):
        litellm_client = AsyncMock()
        litellm_client.health_check.return_value = False
        test_app.state.litellm_client = litellm_client

        resp = await client.get("/ready", params={"profile": "full"})

        assert resp.status_code == 503
        assert resp.json()["checks"]["llm"] == "unreachable"

    async def test_ready_llm_ok(self, test_app, client: AsyncClient):
        litellm_client = AsyncMock()
        litellm_client.health_check.return_value = True
        test_app.state.litellm_client = litellm_client

        resp = await client.get("/ready", params={"profile": "llm"})

        assert resp.status_code == 200
        assert resp.json()["checks"]["llm"] == "ok"

    async def test_ready_sqlite_failure(self, test_app):
        """GET /ready SQLite 不可用时返回 503"""
        # 关闭数据库连接模拟不可用
        await test_app.state.store_group.conn.close()

        async with AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://test",
        ) as ac:
            resp = await ac.get("/ready")
            assert resp.status_code == 503
            data = resp.json()
            assert data["status"] == "not_ready"
            assert data["checks"]["sqlite"] == "unavailable"


class TestObservability:
    """请求级追踪"""

    async def test_request_id_in_response_header(self, client: AsyncClient):
        """每个请求响应包含 X-Request-ID（ULID，26 字符）"""
        resp = await client.get("/health")
        assert len(resp.headers["x-request-id"]) == 26

    async def test_request_ids_are_unique(self, client: AsyncClient):
        ids = {(await client.get("/health")).headers["x-request-id"] for _ in range(3)}
        assert len(ids) == 3

    async def test_incoming_request_id_propagated(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["x-request-id"] == "req-123"
