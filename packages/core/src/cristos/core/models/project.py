"""Project / ProjectTask Domain Model -- 提交后落库的项目与任务"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import Priority, ProjectStatus, TaskStatus


class Project(BaseModel):
    """由组装状态一次性物化出的项目"""

    project_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str = Field(description="创建者")
    source_state_id: str | None = Field(default=None, description="来源组装状态，唯一")
    name: str = Field(description="项目名称")
    description: str = Field(default="", description="项目描述")
    category: str = Field(default="general", description="分类")
    priority: Priority = Field(default=Priority.MEDIUM, description="优先级")
    status: ProjectStatus = Field(default=ProjectStatus.ACTIVE, description="状态")
    due_date: str | None = Field(default=None, description="截止日期")
    metadata: dict[str, Any] = Field(default_factory=dict, description="附加元数据")
    cover_image_ref: str | None = Field(default=None, description="封面图存储引用")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ProjectTask(BaseModel):
    """项目下的任务记录"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    project_id: str = Field(description="所属项目")
    parent_task_id: str | None = Field(default=None, description="父任务（子任务时）")
    title: str = Field(description="标题")
    description: str = Field(default="", description="描述")
    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: Priority = Field(default=Priority.MEDIUM)
    due_date: str | None = Field(default=None)
    assignees: list[str] = Field(default_factory=list)
    created_by: str = Field(description="创建者")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
