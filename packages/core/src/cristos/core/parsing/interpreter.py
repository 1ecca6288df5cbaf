"""WidgetInterpreter -- Widget -> FieldUpdate 的纯函数映射

无 I/O。返回 None 表示该 widget 不产生任何更新：
日期非法、标题/姓名为空、优先级或状态无法识别。
非法日期静默丢弃，不阻塞同一轮的其他进展。
"""

from ..models.enums import Priority
from ..models.state import GatheredTask, GatheredTeamMember
from ..models.updates import (
    FieldUpdate,
    ProjectFieldUpdate,
    TaskAppend,
    TeamMemberAppend,
    UnknownUpdate,
)
from ..models.widget import Widget
from ..validation import (
    is_valid_date,
    normalize_member_role,
    normalize_priority,
    normalize_project_status,
    split_assignees,
)

# 纯文本项目字段：widget 类型 -> GatheredProjectInfo 字段
_TEXT_FIELDS: dict[str, str] = {
    "project_name": "name",
    "projectname": "name",
    "project_description": "description",
    "category": "category",
    "project_owner": "owner",
    "project_lead": "lead",
}

# 日期字段
_DATE_FIELDS: dict[str, str] = {
    "edc_date": "edc_date",
    "project_deadline": "edc_date",
    "fud_date": "fud_date",
}

_TASK_TYPES = {"task", "update_task"}
_SUBTASK_TYPES = {"subtask", "update_subtask"}
_MEMBER_TYPES = {"team_member", "update_team_member"}
_PRIORITY_TYPES = {"priority", "priority_selector"}


def _attr(widget: Widget, *names: str) -> str | None:
    """按顺序取第一个非空字符串属性"""
    for name in names:
        value = widget.attributes.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _value(widget: Widget, *names: str) -> str | None:
    """字段值：内容优先，其次属性"""
    text = widget.inner_text.strip()
    if text:
        return text
    return _attr(widget, *names, "value")


class WidgetInterpreter:
    """把 Widget 映射为类型化的 FieldUpdate"""

    def interpret(self, widget: Widget) -> FieldUpdate | None:
        """解释单个 widget

        Args:
            widget: TagParser 输出

        Returns:
            FieldUpdate，或 None（不产生更新）
        """
        wtype = widget.type
        if wtype in _TEXT_FIELDS:
            value = _value(widget, _TEXT_FIELDS[wtype], "name")
            if value is None:
                return None
            return ProjectFieldUpdate(field=_TEXT_FIELDS[wtype], value=value)
        if wtype in _DATE_FIELDS:
            value = _value(widget, "date")
            if not is_valid_date(value):
                return None
            return ProjectFieldUpdate(field=_DATE_FIELDS[wtype], value=value)
        if wtype in _PRIORITY_TYPES:
            priority = normalize_priority(_value(widget, "priority", "level"))
            if priority is None:
                return None
            return ProjectFieldUpdate(field="priority", value=priority.value)
        if wtype == "status":
            status = normalize_project_status(_value(widget, "status"))
            if status is None:
                return None
            return ProjectFieldUpdate(field="status", value=status.value)
        if wtype in _TASK_TYPES or wtype in _SUBTASK_TYPES:
            return self._interpret_task(widget, is_subtask=wtype in _SUBTASK_TYPES)
        if wtype in _MEMBER_TYPES:
            return self._interpret_member(widget)
        return UnknownUpdate(
            widget_type=wtype,
            raw_attributes=dict(widget.attributes),
            raw_content=widget.inner_text,
        )

    def interpret_all(self, widgets: list[Widget]) -> list[FieldUpdate]:
        """按顺序解释全部 widget，丢弃不产生更新的项"""
        updates: list[FieldUpdate] = []
        for widget in widgets:
            update = self.interpret(widget)
            if update is not None:
                updates.append(update)
        return updates

    @staticmethod
    def _interpret_task(widget: Widget, *, is_subtask: bool) -> TaskAppend | None:
        title = widget.title
        if not title:
            return None
        due_date = _attr(widget, "due_date", "due", "date")
        return TaskAppend(
            task=GatheredTask(
                title=title,
                description=_attr(widget, "description"),
                priority=normalize_priority(widget.attributes.get("priority")) or Priority.MEDIUM,
                due_date=due_date if is_valid_date(due_date) else None,
                assignees=split_assignees(
                    widget.attributes.get("assignees") or widget.attributes.get("assignee")
                ),
                is_subtask=is_subtask,
                parent_title=_attr(widget, "parent", "parent_task") if is_subtask else None,
            )
        )

    @staticmethod
    def _interpret_member(widget: Widget) -> TeamMemberAppend | None:
        name = _attr(widget, "name") or widget.inner_text.strip()
        if not name:
            return None
        return TeamMemberAppend(
            member=GatheredTeamMember(
                name=name,
                email=_attr(widget, "email"),
                role=normalize_member_role(widget.attributes.get("role")),
                avatar_url=_attr(widget, "avatar_url", "avatar"),
                member_id=_attr(widget, "member_id", "user_id"),
            )
        )
