"""ProjectCommitter 测试

测试内容：
1. 前置条件：无名称 / 已提交 / 已放弃
2. 项目与任务写入、子任务父子关联、元数据
3. 部分任务失败：告警，不回滚
4. 并发提交：后到者采纳已存在的项目
"""

from cristos.core.models import (
    AssemblyStatus,
    GatheredProjectInfo,
    GatheredTask,
    GatheredTeamMember,
    MemberRole,
    Priority,
    ProjectStatus,
)
from cristos.gateway.services.project_committer import ProjectCommitter


async def _state(store_group, name: str | None = "Room Cleaning", tasks=(), conversation_id="c1"):
    state = await store_group.state_store.create_state("u1", conversation_id)
    state.gathered_project_info = GatheredProjectInfo(name=name, description="Tidy up")
    state.gathered_tasks = list(tasks)
    await store_group.state_store.update_state(state)
    return state


class _FlakyProjectStore:
    """对指定标题的任务写入失败"""

    def __init__(self, inner, failing_titles: set[str]) -> None:
        self._inner = inner
        self._failing = failing_titles

    async def create_task(self, task):
        if task.title in self._failing:
            raise RuntimeError("disk full")
        return await self._inner.create_task(task)

    def __getattr__(self, name):
        return getattr(self._inner, name)


class _StaleStateStore:
    """get_project_id 总是返回 None，模拟并发下读到旧值"""

    def __init__(self, inner) -> None:
        self._inner = inner

    async def get_project_id(self, state_id: str) -> str | None:
        return None

    def __getattr__(self, name):
        return getattr(self._inner, name)


class TestPreconditions:
    """提交前置条件"""

    async def test_no_name_no_commit(self, committer, store_group, image_queue):
        state = await _state(store_group, name=None)

        result = await committer.commit_if_ready(state)

        assert result.committed is False
        assert result.project_id is None
        assert await store_group.project_store.list_projects("u1") == []
        assert image_queue.jobs == []

    async def test_already_committed(self, committer, store_group):
        state = await _state(store_group)
        first = await committer.commit_if_ready(state)

        second = await committer.commit_if_ready(state)

        assert first.committed is True
        assert second.committed is False
        assert second.project_id == first.project_id

    async def test_abandoned_state_skipped(self, committer, store_group):
        state = await _state(store_group)
        state.status = AssemblyStatus.ABANDONED

        result = await committer.commit_if_ready(state)

        assert result.committed is False
        assert await store_group.project_store.list_projects("u1") == []


class TestCommit:
    """项目与任务写入"""

    async def test_commit_writes_project_and_tasks(self, committer, store_group, image_queue):
        state = await _state(
            store_group,
            tasks=[
                GatheredTask(title="Design", priority=Priority.HIGH),
                GatheredTask(title="Wireframes", is_subtask=True, parent_title="design"),
                GatheredTask(title="Ship", due_date="2025-06-01", assignees=["ana"]),
            ],
        )

        result = await committer.commit_if_ready(state)

        assert result.committed is True
        assert result.tasks_written == 3
        assert result.warnings == []
        assert state.project_id == result.project_id
        assert state.status == AssemblyStatus.COMPLETED
        assert await store_group.state_store.get_project_id(state.state_id) == result.project_id

        tasks = {t.title: t for t in await store_group.project_store.list_tasks(result.project_id)}
        assert tasks["Wireframes"].parent_task_id == tasks["Design"].task_id
        assert tasks["Design"].priority == Priority.HIGH
        assert tasks["Ship"].due_date == "2025-06-01"
        assert tasks["Ship"].assignees == ["ana"]
        assert tasks["Ship"].created_by == "u1"

        assert image_queue.jobs == [("Room Cleaning", "Tidy up", "general", result.project_id)]

    async def test_partial_task_failure_not_rolled_back(self, store_group, image_queue):
        committer = ProjectCommitter(
            store_group.state_store,
            _FlakyProjectStore(store_group.project_store, {"Broken"}),
            image_queue,
        )
        state = await _state(
            store_group,
            tasks=[GatheredTask(title="One"), GatheredTask(title="Broken"), GatheredTask(title="Two")],
        )

        result = await committer.commit_if_ready(state)

        assert result.committed is True
        assert result.tasks_written == 2
        assert result.tasks_failed == 1
        assert result.warnings == ["1 of 3 tasks could not be saved"]
        tasks = await store_group.project_store.list_tasks(result.project_id)
        assert sorted(t.title for t in tasks) == ["One", "Two"]


class TestConcurrentCommit:
    """并发提交同一状态"""

    async def test_stale_copy_adopts_existing_project(self, committer, store_group):
        """内存中的旧副本：前置复查读到已落库的 project_id"""
        state = await _state(store_group)
        stale = await store_group.state_store.get_state_by_id(state.state_id)

        first = await committer.commit_if_ready(state)
        second = await committer.commit_if_ready(stale)

        assert second.committed is False
        assert second.project_id == first.project_id
        assert stale.project_id == first.project_id
        assert len(await store_group.project_store.list_projects("u1")) == 1

    async def test_unique_constraint_adopts_winner(self, committer, store_group, image_queue):
        """复查也读到旧值时，唯一约束兜底，后到者采纳已存在项目"""
        state = await _state(store_group)
        stale = await store_group.state_store.get_state_by_id(state.state_id)
        first = await committer.commit_if_ready(state)

        late = ProjectCommitter(
            _StaleStateStore(store_group.state_store),
            store_group.project_store,
            image_queue,
        )
        second = await late.commit_if_ready(stale)

        assert second.committed is False
        assert second.error is None
        assert second.project_id == first.project_id
        assert stale.status == AssemblyStatus.COMPLETED
        assert len(await store_group.project_store.list_projects("u1")) == 1
        assert len(image_queue.jobs) == 1


class TestBuildProject:
    """build_project 元数据"""

    async def test_metadata_and_defaults(self, store_group):
        state = await _state(store_group)
        state.gathered_project_info.fud_date = "2025-02-01"
        state.gathered_project_info.owner = "Ana"
        state.gathered_team_members = [GatheredTeamMember(name="Bo", role=MemberRole.LEAD)]

        project = ProjectCommitter.build_project(state)

        assert project.source_state_id == state.state_id
        assert project.category == "general"
        assert project.priority == Priority.MEDIUM
        assert project.status == ProjectStatus.ACTIVE
        assert project.due_date == "2025-02-01"
        assert project.metadata["created_via_ai"] is True
        assert project.metadata["ai_conversation_id"] == "c1"
        assert project.metadata["ai_state_id"] == state.state_id
        assert project.metadata["owner"] == "Ana"
        assert project.metadata["team_members"] == [{"name": "Bo", "role": "lead"}]
        assert project.metadata["total_tasks"] == 0

    async def test_edc_preferred_and_status_normalized(self, store_group):
        state = await _state(store_group)
        state.gathered_project_info.edc_date = "2025-03-01"
        state.gathered_project_info.fud_date = "2025-02-01"
        state.gathered_project_info.status = "planning"

        project = ProjectCommitter.build_project(state)

        assert project.due_date == "2025-03-01"
        assert project.status == ProjectStatus.PLANNING
