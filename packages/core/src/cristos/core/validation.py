"""日期与字段校验

日期严格为 YYYY-MM-DD，且能往返日历解析；模型回显的占位格式一律拒绝。
枚举类字段做宽松归一化，无法识别时返回 None（由调用方决定是否跳过）。
"""

import re
from datetime import date

from .models.enums import MemberRole, Priority, ProjectStatus

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_PLACEHOLDER_TOKENS = ("YYYY", "MM", "DD")

_ROLE_ALIASES: dict[str, MemberRole] = {
    "team": MemberRole.MEMBER,
    "team member": MemberRole.MEMBER,
    "team_member": MemberRole.MEMBER,
    "contributor": MemberRole.MEMBER,
}


def is_valid_date(value: object) -> bool:
    """判断是否为合法日期字符串

    合法条件：非空；不含 YYYY/MM/DD 占位符；匹配 YYYY-MM-DD；
    经日历解析后重新序列化与原串完全一致（拒绝 2024-02-30 之类）。
    """
    if not isinstance(value, str) or not value:
        return False
    if any(token in value for token in _PLACEHOLDER_TOKENS):
        return False
    if _DATE_RE.fullmatch(value) is None:
        return False
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        return False
    return parsed.isoformat() == value


def _normalize_token(value: str) -> str:
    return re.sub(r"[\s\-]+", "_", value.strip().lower())


def normalize_priority(value: object) -> Priority | None:
    """归一化优先级，无法识别返回 None"""
    if not isinstance(value, str):
        return None
    token = _normalize_token(value)
    try:
        return Priority(token)
    except ValueError:
        return None


def normalize_project_status(value: object) -> ProjectStatus | None:
    """归一化项目状态（on hold / on-hold -> on_hold），无法识别返回 None"""
    if not isinstance(value, str):
        return None
    token = _normalize_token(value)
    try:
        return ProjectStatus(token)
    except ValueError:
        return None


def normalize_member_role(value: object) -> MemberRole:
    """归一化成员角色，缺失或无法识别时降为最低信任级别 viewer"""
    if not isinstance(value, str) or not value.strip():
        return MemberRole.VIEWER
    raw = value.strip().lower()
    if raw in _ROLE_ALIASES:
        return _ROLE_ALIASES[raw]
    try:
        return MemberRole(_normalize_token(raw))
    except ValueError:
        return MemberRole.VIEWER


def split_assignees(value: object) -> list[str]:
    """逗号分隔的指派人属性 -> 标识列表（缺失时为空列表）"""
    if not isinstance(value, str):
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
