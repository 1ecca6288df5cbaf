"""端到端组装流程 -- echo 后端把用户输入中的标签原样回显

测试内容：
1. 先给任务、再给名称、再给描述：步骤随数据推进
2. 名称出现即提交项目，任务一并落库
3. 进度查询与对话日志
4. 重启后状态仍可读取
"""

from cristos.gateway.main import create_app
from httpx import ASGITransport, AsyncClient


async def _turn(client: AsyncClient, text: str, conversation_id: str = "conv-1") -> dict:
    resp = await client.post(
        "/api/assembly/turns",
        json={"user_id": "u1", "conversation_id": conversation_id, "text": text},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestAssemblyFlow:
    """完整组装流程"""

    async def test_project_assembled_over_three_turns(self, integration_app, client: AsyncClient):
        resp = await client.post("/api/users", json={"user_id": "u1", "display_name": "One"})
        assert resp.status_code == 201

        first = await _turn(
            client,
            "I need to clean my room <task1>Make the bed</task1> <task2>Vacuum</task2>",
        )
        assert first["next_step"] == "gathering_project_name"
        assert [t["title"] for t in first["state"]["gathered_tasks"]] == ["Make the bed", "Vacuum"]
        assert first["committed"] is False
        assert first["prose"] == "Echo: I need to clean my room"

        second = await _turn(client, "<project_name>Room Cleaning</project_name>")
        assert second["committed"] is True
        project_id = second["project_id"]
        assert second["next_step"] == "gathering_project_description"

        third = await _turn(client, "<project_description>Tidy the bedroom</project_description>")
        assert third["committed"] is False
        assert third["project_id"] == project_id
        assert third["next_step"] == "suggesting_team_members"

        resp = await client.get(
            "/api/assembly/state", params={"user_id": "u1", "conversation_id": "conv-1"}
        )
        progress = resp.json()["progress"]
        assert progress["completed_items"] == 3
        assert "team_members" in progress["missing_info"]

        store_group = integration_app.state.store_group
        tasks = await store_group.project_store.list_tasks(project_id)
        assert sorted(t.title for t in tasks) == ["Make the bed", "Vacuum"]
        messages = await store_group.message_store.list_messages("conv-1")
        assert len(messages) == 6
        assert messages[-1].content.startswith("Echo: ")

    async def test_unknown_user_cannot_start(self, client: AsyncClient):
        resp = await client.post(
            "/api/assembly/turns", json={"user_id": "nobody", "text": "hello"}
        )
        assert resp.status_code == 404

    async def test_ready_with_lifespan(self, client: AsyncClient):
        resp = await client.get("/ready", params={"profile": "llm"})
        assert resp.status_code == 200
        assert resp.json()["checks"]["llm"] == "skipped"


class TestRestart:
    """状态持久化"""

    async def test_state_survives_restart(self, tmp_db_path, tmp_artifacts_dir, monkeypatch):
        monkeypatch.setenv("CRISTOS_DB_PATH", str(tmp_db_path))
        monkeypatch.setenv("CRISTOS_ARTIFACTS_DIR", str(tmp_artifacts_dir))
        monkeypatch.setenv("CRISTOS_LLM_MODE", "echo")
        monkeypatch.setenv("CRISTOS_COVER_IMAGES", "off")

        app = create_app()
        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                await ac.post("/api/users", json={"user_id": "u1"})
                await _turn(ac, "<task1>Water plants</task1>", conversation_id="conv-r")

        app = create_app()
        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                resp = await ac.get(
                    "/api/assembly/state", params={"user_id": "u1", "conversation_id": "conv-r"}
                )
                assert resp.status_code == 200
                tasks = resp.json()["state"]["gathered_tasks"]
                assert [t["title"] for t in tasks] == ["Water plants"]
