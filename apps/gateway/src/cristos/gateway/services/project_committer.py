"""ProjectCommitter -- 组装状态到项目的一次性物化

提交前置条件：项目名称已收集且状态尚未记录 project_id。
写入顺序：项目 -> 任务（逐条，部分失败不回滚）-> 条件写入 project_id -> 投递封面图。
projects.source_state_id 唯一约束保证同一状态至多产生一个项目；
并发提交时后到者采纳已存在的项目。
"""

import aiosqlite
import structlog
from cristos.core.assembly import transition_status
from cristos.core.models import (
    AssemblyState,
    AssemblyStatus,
    GatheredTask,
    Priority,
    Project,
    ProjectStatus,
    ProjectTask,
    TaskStatus,
)
from cristos.core.store.protocols import ProjectStore, StateStore
from cristos.core.validation import is_valid_date, normalize_project_status
from pydantic import BaseModel, Field
from ulid import ULID

from .image_jobs import ImageJobQueue

log = structlog.get_logger()

DEFAULT_CATEGORY = "general"


class CommitResult(BaseModel):
    """一次提交尝试的结果"""

    committed: bool = False
    project_id: str | None = None
    tasks_written: int = 0
    tasks_failed: int = 0
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


class ProjectCommitter:
    """项目提交服务"""

    def __init__(
        self,
        state_store: StateStore,
        project_store: ProjectStore,
        image_queue: ImageJobQueue | None = None,
    ) -> None:
        self._states = state_store
        self._projects = project_store
        self._images = image_queue

    async def commit_if_ready(self, state: AssemblyState) -> CommitResult:
        """满足前置条件时提交项目（就地更新 state.project_id / status）

        Returns:
            CommitResult；committed=True 仅在本次调用创建了项目时成立
        """
        info = state.gathered_project_info
        if not info.name:
            return CommitResult()
        if state.project_id is not None:
            return CommitResult(project_id=state.project_id)
        if state.status == AssemblyStatus.ABANDONED:
            return CommitResult()

        # 其他请求可能已提交同一状态
        existing_id = await self._states.get_project_id(state.state_id)
        if existing_id is not None:
            self._adopt(state, existing_id)
            return CommitResult(project_id=existing_id)

        project = self.build_project(state)
        try:
            await self._projects.create_project(project)
        except aiosqlite.IntegrityError:
            existing = await self._projects.get_project_by_source_state(state.state_id)
            if existing is None:
                log.error("project_write_failed", state_id=state.state_id, reason="integrity")
                return CommitResult(error="project_write_failed")
            log.info(
                "project_commit_lost_race",
                state_id=state.state_id,
                project_id=existing.project_id,
            )
            await self._states.claim_project_id(state.state_id, existing.project_id)
            self._adopt(state, existing.project_id)
            return CommitResult(project_id=existing.project_id)
        except Exception as e:
            log.error(
                "project_write_failed",
                state_id=state.state_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return CommitResult(error="project_write_failed")

        written, failed = await self._write_tasks(project, state.gathered_tasks, state.user_id)

        try:
            claimed = await self._states.claim_project_id(state.state_id, project.project_id)
        except Exception as e:
            # update_state 会以 COALESCE 补写 project_id
            log.warning(
                "project_claim_failed",
                state_id=state.state_id,
                project_id=project.project_id,
                error=str(e),
            )
            claimed = True
        if not claimed:
            winner = await self._states.get_project_id(state.state_id)
            if winner is not None and winner != project.project_id:
                self._adopt(state, winner)
                return CommitResult(project_id=winner)

        self._adopt(state, project.project_id)

        result = CommitResult(
            committed=True,
            project_id=project.project_id,
            tasks_written=written,
            tasks_failed=failed,
        )
        if failed:
            result.warnings.append(f"{failed} of {written + failed} tasks could not be saved")
            log.warning(
                "commit_partial_failure",
                state_id=state.state_id,
                project_id=project.project_id,
                tasks_written=written,
                tasks_failed=failed,
            )
        log.info(
            "project_committed",
            state_id=state.state_id,
            project_id=project.project_id,
            user_id=state.user_id,
            tasks_written=written,
        )

        if self._images is not None:
            self._images.enqueue(
                project.name, project.description, project.category, project.project_id
            )
        return result

    async def sync_tasks(
        self,
        state: AssemblyState,
        tasks: list[GatheredTask],
    ) -> CommitResult:
        """已提交状态上新收集的任务追加到项目，跳过已有标题"""
        if state.project_id is None or not tasks:
            return CommitResult(project_id=state.project_id)
        project = await self._projects.get_project(state.project_id)
        if project is None:
            log.warning("sync_project_missing", project_id=state.project_id)
            return CommitResult(project_id=state.project_id, error="project_not_found")

        existing = await self._projects.list_tasks(project.project_id)
        known = {t.title.strip().lower() for t in existing}
        parents = {t.title.strip().lower(): t.task_id for t in existing if t.parent_task_id is None}
        fresh = [t for t in tasks if t.title.strip().lower() not in known]
        written, failed = await self._write_tasks(project, fresh, state.user_id, parents)
        result = CommitResult(
            project_id=project.project_id,
            tasks_written=written,
            tasks_failed=failed,
        )
        if failed:
            result.warnings.append(f"{failed} of {written + failed} tasks could not be saved")
        if written:
            log.info("project_tasks_synced", project_id=project.project_id, tasks_written=written)
        return result

    @staticmethod
    def build_project(state: AssemblyState) -> Project:
        """由状态构建 Project 记录"""
        info = state.gathered_project_info
        due_date = None
        for candidate in (info.edc_date, info.fud_date):
            if candidate and is_valid_date(candidate):
                due_date = candidate
                break
        status = normalize_project_status(info.status) if info.status else None
        return Project(
            project_id=str(ULID()),
            user_id=state.user_id,
            source_state_id=state.state_id,
            name=info.name or "",
            description=info.description or "",
            category=info.category or DEFAULT_CATEGORY,
            priority=info.priority or Priority.MEDIUM,
            status=status or ProjectStatus.ACTIVE,
            due_date=due_date,
            metadata={
                "created_via_ai": True,
                "ai_conversation_id": state.conversation_id,
                "ai_state_id": state.state_id,
                "team_members": [
                    m.model_dump(mode="json", exclude_none=True)
                    for m in state.gathered_team_members
                ],
                "total_tasks": len(state.gathered_tasks),
                "owner": info.owner,
                "lead": info.lead,
                "edc_date": info.edc_date,
                "fud_date": info.fud_date,
            },
        )

    async def _write_tasks(
        self,
        project: Project,
        tasks: list[GatheredTask],
        created_by: str,
        parents: dict[str, str] | None = None,
    ) -> tuple[int, int]:
        """逐条写入任务，返回 (成功数, 失败数)"""
        parents = dict(parents or {})
        written = 0
        failed = 0
        for task in tasks:
            parent_id = None
            if task.is_subtask and task.parent_title:
                parent_id = parents.get(task.parent_title.strip().lower())
            record = ProjectTask(
                task_id=str(ULID()),
                project_id=project.project_id,
                parent_task_id=parent_id,
                title=task.title,
                description=task.description or "",
                status=TaskStatus.TODO,
                priority=task.priority,
                due_date=task.due_date if task.due_date and is_valid_date(task.due_date) else None,
                assignees=list(task.assignees),
                created_by=created_by,
            )
            try:
                await self._projects.create_task(record)
            except Exception as e:
                failed += 1
                log.warning(
                    "task_write_failed",
                    project_id=project.project_id,
                    title=task.title,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue
            written += 1
            if not task.is_subtask:
                parents[task.title.strip().lower()] = record.task_id
        return written, failed

    @staticmethod
    def _adopt(state: AssemblyState, project_id: str) -> None:
        state.project_id = project_id
        transition_status(state, AssemblyStatus.COMPLETED)
