"""组装状态合并与步骤判定

纯内存操作：
FieldUpdate 逐条应用到 AssemblyState（就地修改），然后根据当前数据重新计算步骤。
步骤不是严格线性推进，而是每轮从数据重新推导，因此容忍用户乱序输入。
"""

from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, Field

from .exceptions import InvalidStatusTransitionError
from .models.enums import (
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    AssemblyStatus,
    AssemblyStep,
    Priority,
    validate_status_transition,
)
from .models.state import (
    AssemblyProgress,
    AssemblyState,
    GatheredTask,
    GatheredTeamMember,
)
from .models.updates import (
    FieldUpdate,
    ProjectFieldUpdate,
    TaskAppend,
    TeamMemberAppend,
    UnknownUpdate,
)

log = structlog.get_logger()

# 项目字段 -> 对应的必填/可选字段名
_REQUIRED_BY_FIELD: dict[str, str] = {
    "name": "project_name",
    "description": "project_description",
}
_OPTIONAL_BY_FIELD: dict[str, str] = {
    "category": "category",
    "priority": "priority",
    "edc_date": "dates",
    "fud_date": "dates",
}

# 进度统计项总数：名称、描述、成员、任务、分类、优先级、日期
PROGRESS_TOTAL_ITEMS = 7


class MergeReport(BaseModel):
    """一轮合并的结果摘要"""

    applied: int = 0
    tasks_added: list[GatheredTask] = Field(default_factory=list)
    members_added: list[GatheredTeamMember] = Field(default_factory=list)
    fields_set: list[str] = Field(default_factory=list)
    unknown: list[UnknownUpdate] = Field(default_factory=list)
    duplicates_skipped: int = 0


def apply_update(state: AssemblyState, update: FieldUpdate) -> bool:
    """将单个 FieldUpdate 应用到状态（就地修改）

    项目字段覆盖写入；任务/成员追加；Unknown 不改动状态。

    Returns:
        True 如果状态被修改
    """
    if isinstance(update, ProjectFieldUpdate):
        value: str | Priority = update.value
        if update.field == "priority":
            value = Priority(update.value)
        setattr(state.gathered_project_info, update.field, value)
        _discard(state.required_fields, _REQUIRED_BY_FIELD.get(update.field))
        _discard(state.optional_fields, _OPTIONAL_BY_FIELD.get(update.field))
        return True
    if isinstance(update, TaskAppend):
        state.gathered_tasks.append(update.task)
        _discard(state.optional_fields, "tasks")
        return True
    if isinstance(update, TeamMemberAppend):
        state.gathered_team_members.append(update.member)
        _discard(state.optional_fields, "team_members")
        return True
    return False


def merge_updates(state: AssemblyState, updates: list[FieldUpdate]) -> MergeReport:
    """合并一轮的全部更新

    同一轮内按标题（任务）/姓名（成员）去重，忽略大小写；跨轮不去重。
    未指明父任务的子任务关联到本轮（或此前）最近的顶层任务。
    """
    report = MergeReport()
    seen_titles: set[str] = set()
    seen_names: set[str] = set()
    last_parent = _last_top_level_title(state)

    for update in updates:
        if isinstance(update, TaskAppend):
            key = update.task.title.strip().lower()
            if key in seen_titles:
                report.duplicates_skipped += 1
                continue
            seen_titles.add(key)
            if update.task.is_subtask and update.task.parent_title is None:
                update.task.parent_title = last_parent
            if not update.task.is_subtask:
                last_parent = update.task.title
            report.tasks_added.append(update.task)
        elif isinstance(update, TeamMemberAppend):
            key = update.member.name.strip().lower()
            if key in seen_names:
                report.duplicates_skipped += 1
                continue
            seen_names.add(key)
            report.members_added.append(update.member)
        elif isinstance(update, ProjectFieldUpdate):
            report.fields_set.append(update.field)
        elif isinstance(update, UnknownUpdate):
            report.unknown.append(update)

        if apply_update(state, update):
            report.applied += 1

    reconcile_required_fields(state)
    if report.applied:
        now = datetime.now(UTC)
        state.updated_at = now
        state.last_activity_at = now
    return report


def reconcile_required_fields(state: AssemblyState) -> None:
    """移除已满足的必填/可选字段（只减不增）"""
    info = state.gathered_project_info
    for field, required in _REQUIRED_BY_FIELD.items():
        if getattr(info, field):
            _discard(state.required_fields, required)
    for field, optional in _OPTIONAL_BY_FIELD.items():
        if getattr(info, field):
            _discard(state.optional_fields, optional)
    if state.gathered_tasks:
        _discard(state.optional_fields, "tasks")
    if state.gathered_team_members:
        _discard(state.optional_fields, "team_members")


def determine_current_step(state: AssemblyState) -> AssemblyStep:
    """根据当前数据推导步骤

    1. 缺名称 -> gathering_project_name
    2. 缺描述 -> gathering_project_description
    3. 名称与描述齐全：无成员 -> suggesting_team_members；无任务 -> suggesting_tasks；
       否则 -> confirming_project
    4. 兜底 -> gathering_info
    """
    info = state.gathered_project_info
    if "project_name" in state.required_fields:
        return AssemblyStep.GATHERING_PROJECT_NAME
    if "project_description" in state.required_fields:
        return AssemblyStep.GATHERING_PROJECT_DESCRIPTION
    if info.name and info.description:
        if not state.gathered_team_members:
            return AssemblyStep.SUGGESTING_TEAM_MEMBERS
        if not state.gathered_tasks:
            return AssemblyStep.SUGGESTING_TASKS
        return AssemblyStep.CONFIRMING_PROJECT
    return AssemblyStep.GATHERING_INFO


def identify_missing_info(state: AssemblyState) -> list[str]:
    """缺失信息：未满足的必填字段在前，未满足的可选字段在后"""
    info = state.gathered_project_info
    present = {
        "project_name": bool(info.name),
        "project_description": bool(info.description),
        "category": bool(info.category),
        "priority": info.priority is not None,
        "team_members": bool(state.gathered_team_members),
        "tasks": bool(state.gathered_tasks),
        "dates": bool(info.edc_date or info.fud_date),
    }
    missing = [f for f in REQUIRED_FIELDS if not present[f]]
    missing.extend(f for f in OPTIONAL_FIELDS if not present[f])
    return missing


def compute_progress(state: AssemblyState) -> AssemblyProgress:
    """计算组装进度"""
    info = state.gathered_project_info
    checks = [
        bool(info.name),
        bool(info.description),
        bool(state.gathered_team_members),
        bool(state.gathered_tasks),
        bool(info.category),
        info.priority is not None,
        bool(info.edc_date or info.fud_date),
    ]
    completed = sum(checks)
    return AssemblyProgress(
        progress=completed / PROGRESS_TOTAL_ITEMS,
        completed_items=completed,
        total_items=PROGRESS_TOTAL_ITEMS,
        current_step=state.current_step,
        missing_info=identify_missing_info(state),
    )


def transition_status(state: AssemblyState, to_status: AssemblyStatus) -> None:
    """状态流转（就地修改）

    Raises:
        InvalidStatusTransitionError: 非法流转
    """
    if state.status == to_status:
        return
    if not validate_status_transition(state.status, to_status):
        raise InvalidStatusTransitionError(state.status.value, to_status.value)
    log.info(
        "assembly_status_transition",
        state_id=state.state_id,
        from_status=state.status.value,
        to_status=to_status.value,
    )
    state.status = to_status
    state.updated_at = datetime.now(UTC)


def _discard(items: list[str], value: str | None) -> None:
    if value is not None and value in items:
        items.remove(value)


def _last_top_level_title(state: AssemblyState) -> str | None:
    for task in reversed(state.gathered_tasks):
        if not task.is_subtask:
            return task.title
    return None
