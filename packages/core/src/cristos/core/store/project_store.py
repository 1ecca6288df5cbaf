"""ProjectStore SQLite 实现 -- 提交后的项目与任务

projects.source_state_id 有唯一索引：同一组装状态的第二次写入会抛出
aiosqlite.IntegrityError，由调用方视为无操作成功。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.project import Project, ProjectTask

_PROJECT_COLUMNS = (
    "project_id, user_id, source_state_id, name, description, category, priority, "
    "status, due_date, metadata, cover_image_ref, created_at"
)
_TASK_COLUMNS = (
    "task_id, project_id, parent_task_id, title, description, status, priority, "
    "due_date, assignees, created_by, created_at"
)


class SqliteProjectStore:
    """ProjectStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_project(self, project: Project) -> Project:
        """创建项目记录

        Raises:
            aiosqlite.IntegrityError: source_state_id 已存在项目
        """
        try:
            await self._conn.execute(
                f"""
                INSERT INTO projects ({_PROJECT_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    project.project_id,
                    project.user_id,
                    project.source_state_id,
                    project.name,
                    project.description,
                    project.category,
                    project.priority.value,
                    project.status.value,
                    project.due_date,
                    json.dumps(project.metadata, ensure_ascii=False),
                    project.cover_image_ref,
                    project.created_at.isoformat(),
                ),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return project

    async def create_task(self, task: ProjectTask) -> ProjectTask:
        """创建任务记录"""
        try:
            await self._conn.execute(
                f"""
                INSERT INTO project_tasks ({_TASK_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.task_id,
                    task.project_id,
                    task.parent_task_id,
                    task.title,
                    task.description,
                    task.status.value,
                    task.priority.value,
                    task.due_date,
                    json.dumps(task.assignees, ensure_ascii=False),
                    task.created_by,
                    task.created_at.isoformat(),
                ),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return task

    async def get_project(self, project_id: str) -> Project | None:
        """根据 project_id 查询项目"""
        cursor = await self._conn.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE project_id = ?",
            (project_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_project(row)

    async def get_project_by_source_state(self, state_id: str) -> Project | None:
        """查询某组装状态物化出的项目"""
        cursor = await self._conn.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE source_state_id = ?",
            (state_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_project(row)

    async def list_projects(self, user_id: str) -> list[Project]:
        """查询用户的项目，按 created_at 倒序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_PROJECT_COLUMNS} FROM projects
            WHERE user_id = ? ORDER BY created_at DESC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_project(row) for row in rows]

    async def list_tasks(self, project_id: str) -> list[ProjectTask]:
        """查询项目下的任务，按写入顺序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_TASK_COLUMNS} FROM project_tasks
            WHERE project_id = ? ORDER BY created_at, rowid
            """,
            (project_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def set_cover_image(self, project_id: str, cover_image_ref: str) -> None:
        """记录封面图引用"""
        await self._conn.execute(
            "UPDATE projects SET cover_image_ref = ? WHERE project_id = ?",
            (cover_image_ref, project_id),
        )
        await self._conn.commit()

    @staticmethod
    def _row_to_project(row: aiosqlite.Row) -> Project:
        """将数据库行转换为 Project 模型"""
        return Project(
            project_id=row[0],
            user_id=row[1],
            source_state_id=row[2],
            name=row[3],
            description=row[4],
            category=row[5],
            priority=row[6],
            status=row[7],
            due_date=row[8],
            metadata=json.loads(row[9]),
            cover_image_ref=row[10],
            created_at=datetime.fromisoformat(row[11]),
        )

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> ProjectTask:
        """将数据库行转换为 ProjectTask 模型"""
        return ProjectTask(
            task_id=row[0],
            project_id=row[1],
            parent_task_id=row[2],
            title=row[3],
            description=row[4],
            status=row[5],
            priority=row[6],
            due_date=row[7],
            assignees=json.loads(row[8]),
            created_by=row[9],
            created_at=datetime.fromisoformat(row[10]),
        )
