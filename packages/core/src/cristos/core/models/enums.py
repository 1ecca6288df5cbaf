"""枚举定义

包含 AssemblyStep 组装步骤、AssemblyStatus 状态机、优先级/角色/消息角色等枚举，
以及 VALID_STATUS_TRANSITIONS 合法流转映射与必填/可选字段清单。
"""

from enum import StrEnum


class AssemblyStep(StrEnum):
    """组装步骤 -- 每轮合并后根据已收集数据重新计算"""

    INITIALIZING = "initializing"
    GATHERING_PROJECT_NAME = "gathering_project_name"
    GATHERING_PROJECT_DESCRIPTION = "gathering_project_description"
    SUGGESTING_TEAM_MEMBERS = "suggesting_team_members"
    SUGGESTING_TASKS = "suggesting_tasks"
    CONFIRMING_PROJECT = "confirming_project"
    COMPLETED = "completed"
    # 兜底：必填字段已清空但核心信息不完整
    GATHERING_INFO = "gathering_info"


class AssemblyStatus(StrEnum):
    """组装状态生命周期"""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


VALID_STATUS_TRANSITIONS: dict[AssemblyStatus, set[AssemblyStatus]] = {
    AssemblyStatus.IN_PROGRESS: {AssemblyStatus.COMPLETED, AssemblyStatus.ABANDONED},
    # 终态不可再流转
    AssemblyStatus.COMPLETED: set(),
    AssemblyStatus.ABANDONED: set(),
}

TERMINAL_STATUSES: set[AssemblyStatus] = {
    AssemblyStatus.COMPLETED,
    AssemblyStatus.ABANDONED,
}


class Priority(StrEnum):
    """项目/任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ProjectStatus(StrEnum):
    """项目状态"""

    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(StrEnum):
    """落库任务状态"""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class MemberRole(StrEnum):
    """团队成员角色，VIEWER 为最低信任级别"""

    OWNER = "owner"
    SPONSOR = "sponsor"
    LEAD = "lead"
    MEMBER = "member"
    FYI = "fyi"
    VIEWER = "viewer"


class MessageRole(StrEnum):
    """对话消息角色"""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class VoiceProcessingStatus(StrEnum):
    """语音会话处理状态"""

    RECORDING = "recording"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# 必填字段：缺失时不能越过信息收集阶段
REQUIRED_FIELDS: tuple[str, ...] = ("project_name", "project_description")

# 可选字段
OPTIONAL_FIELDS: tuple[str, ...] = ("category", "priority", "team_members", "tasks", "dates")


def validate_status_transition(from_status: AssemblyStatus, to_status: AssemblyStatus) -> bool:
    """验证组装状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_STATUS_TRANSITIONS.get(from_status, set())
    return to_status in allowed
