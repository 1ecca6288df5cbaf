"""FieldUpdate -- WidgetInterpreter 输出的判别联合

每个变体携带 kind 判别字段，调用方可穷举匹配。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from .state import GatheredTask, GatheredTeamMember

# 可被 ProjectFieldUpdate 写入的 GatheredProjectInfo 字段
ProjectFieldName = Literal[
    "name",
    "description",
    "category",
    "priority",
    "status",
    "edc_date",
    "fud_date",
    "owner",
    "lead",
]


class ProjectFieldUpdate(BaseModel):
    """覆盖项目字段"""

    kind: Literal["project_field"] = "project_field"
    field: ProjectFieldName
    value: str


class TaskAppend(BaseModel):
    """追加任务"""

    kind: Literal["task_append"] = "task_append"
    task: GatheredTask


class TeamMemberAppend(BaseModel):
    """追加团队成员"""

    kind: Literal["team_member_append"] = "team_member_append"
    member: GatheredTeamMember


class UnknownUpdate(BaseModel):
    """未知标签，原样透传，不影响必填/可选字段"""

    kind: Literal["unknown"] = "unknown"
    widget_type: str
    raw_attributes: dict[str, str | bool] = Field(default_factory=dict)
    raw_content: str = ""


FieldUpdate = Annotated[
    ProjectFieldUpdate | TaskAppend | TeamMemberAppend | UnknownUpdate,
    Field(discriminator="kind"),
]
