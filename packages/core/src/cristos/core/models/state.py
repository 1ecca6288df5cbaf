"""AssemblyState Domain Model

每个 (user, conversation) 一份的持久化聚合：收集到的项目信息、任务、团队成员，
以及必填/可选字段清单与当前步骤。合并规则见 cristos.core.assembly。
"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .enums import (
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    AssemblyStatus,
    AssemblyStep,
    MemberRole,
    Priority,
)


class GatheredProjectInfo(BaseModel):
    """已收集的项目字段，均为可选直到填写；日期仅为严格 YYYY-MM-DD"""

    name: str | None = Field(default=None, description="项目名称")
    description: str | None = Field(default=None, description="项目描述")
    category: str | None = Field(default=None, description="分类")
    priority: Priority | None = Field(default=None, description="优先级")
    status: str | None = Field(default=None, description="项目状态")
    edc_date: str | None = Field(default=None, description="预计完成日期")
    fud_date: str | None = Field(default=None, description="跟进日期")
    owner: str | None = Field(default=None, description="项目负责人")
    lead: str | None = Field(default=None, description="项目牵头人")


class GatheredTask(BaseModel):
    """已收集的任务（或子任务）"""

    title: str = Field(description="任务标题")
    description: str | None = Field(default=None, description="任务描述")
    priority: Priority = Field(default=Priority.MEDIUM, description="优先级")
    due_date: str | None = Field(default=None, description="截止日期，严格 YYYY-MM-DD")
    assignees: list[str] = Field(default_factory=list, description="指派人标识列表")
    is_subtask: bool = Field(default=False, description="是否为子任务")
    parent_title: str | None = Field(default=None, description="子任务所属任务标题")


class GatheredTeamMember(BaseModel):
    """已收集的团队成员"""

    name: str = Field(description="姓名")
    email: str | None = Field(default=None, description="邮箱，未校验")
    role: MemberRole = Field(default=MemberRole.VIEWER, description="角色")
    avatar_url: str | None = Field(default=None, description="头像地址，未校验")
    member_id: str | None = Field(default=None, description="外部用户标识")


class AssemblyState(BaseModel):
    """项目组装状态聚合

    project_id 至多设置一次；一旦设置，status 变为 completed，
    之后不再尝试提交。
    """

    state_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str = Field(description="所属用户")
    conversation_id: str | None = Field(default=None, description="所属对话，缺失时按用户作用域")
    project_id: str | None = Field(default=None, description="提交后生成的项目 ID")
    gathered_project_info: GatheredProjectInfo = Field(default_factory=GatheredProjectInfo)
    gathered_tasks: list[GatheredTask] = Field(default_factory=list)
    gathered_team_members: list[GatheredTeamMember] = Field(default_factory=list)
    required_fields: list[str] = Field(default_factory=lambda: list(REQUIRED_FIELDS))
    optional_fields: list[str] = Field(default_factory=lambda: list(OPTIONAL_FIELDS))
    current_step: AssemblyStep = Field(default=AssemblyStep.INITIALIZING)
    status: AssemblyStatus = Field(default=AssemblyStatus.IN_PROGRESS)
    templates_suggested: bool = Field(default=False, description="是否已向用户推荐模板")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_activity_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_committed(self) -> bool:
        return self.project_id is not None


class AssemblyProgress(BaseModel):
    """组装进度报告"""

    progress: float = Field(description="完成比例 0~1")
    completed_items: int = Field(description="已完成项数")
    total_items: int = Field(description="总项数")
    current_step: AssemblyStep
    missing_info: list[str] = Field(default_factory=list)
