"""Cristos Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    TERMINAL_STATUSES,
    VALID_STATUS_TRANSITIONS,
    AssemblyStatus,
    AssemblyStep,
    MemberRole,
    MessageRole,
    Priority,
    ProjectStatus,
    TaskStatus,
    VoiceProcessingStatus,
    validate_status_transition,
)
from .message import ChatMessage
from .project import Project, ProjectTask
from .state import (
    AssemblyProgress,
    AssemblyState,
    GatheredProjectInfo,
    GatheredTask,
    GatheredTeamMember,
)
from .updates import (
    FieldUpdate,
    ProjectFieldUpdate,
    TaskAppend,
    TeamMemberAppend,
    UnknownUpdate,
)
from .voice import VoiceSession
from .widget import ParsedMessage, Widget

__all__ = [
    # 枚举
    "AssemblyStep",
    "AssemblyStatus",
    "Priority",
    "ProjectStatus",
    "TaskStatus",
    "MemberRole",
    "MessageRole",
    "VoiceProcessingStatus",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    # 状态机
    "VALID_STATUS_TRANSITIONS",
    "TERMINAL_STATUSES",
    "validate_status_transition",
    # AssemblyState
    "AssemblyState",
    "AssemblyProgress",
    "GatheredProjectInfo",
    "GatheredTask",
    "GatheredTeamMember",
    # Widget / FieldUpdate
    "Widget",
    "ParsedMessage",
    "FieldUpdate",
    "ProjectFieldUpdate",
    "TaskAppend",
    "TeamMemberAppend",
    "UnknownUpdate",
    # Project
    "Project",
    "ProjectTask",
    # Message / Voice
    "ChatMessage",
    "VoiceSession",
]
