"""Store Protocol 接口定义

定义身份、组装状态、项目、对话日志、语音会话存储的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing），便于测试替换。
"""

from typing import Protocol

from ..models.enums import AssemblyStatus, MessageRole, VoiceProcessingStatus
from ..models.message import ChatMessage
from ..models.project import Project, ProjectTask
from ..models.state import AssemblyState
from ..models.voice import VoiceSession


class IdentityStore(Protocol):
    """身份存储接口"""

    async def user_exists(self, user_id: str) -> bool:
        """用户是否存在"""
        ...


class StateStore(Protocol):
    """组装状态存储接口"""

    async def get_state(
        self,
        conversation_id: str | None,
        user_id: str,
    ) -> AssemblyState | None:
        """按 (conversation_id, user_id) 查询"""
        ...

    async def get_latest_for_user(
        self,
        user_id: str,
        status: AssemblyStatus | None = AssemblyStatus.IN_PROGRESS,
    ) -> AssemblyState | None:
        """按用户查询最新状态，不限对话（回退）"""
        ...

    async def get_state_by_id(self, state_id: str) -> AssemblyState | None:
        """根据 state_id 查询"""
        ...

    async def get_project_id(self, state_id: str) -> str | None:
        """读取已提交的 project_id"""
        ...

    async def create_state(
        self,
        user_id: str,
        conversation_id: str | None = None,
    ) -> AssemblyState:
        """创建状态"""
        ...

    async def update_state(self, state: AssemblyState) -> AssemblyState:
        """写回状态"""
        ...

    async def claim_project_id(self, state_id: str, project_id: str) -> bool:
        """条件写入 project_id"""
        ...


class ProjectStore(Protocol):
    """项目存储接口"""

    async def create_project(self, project: Project) -> Project:
        """创建项目"""
        ...

    async def create_task(self, task: ProjectTask) -> ProjectTask:
        """创建任务"""
        ...

    async def get_project(self, project_id: str) -> Project | None:
        """查询项目"""
        ...

    async def get_project_by_source_state(self, state_id: str) -> Project | None:
        """查询组装状态对应的项目"""
        ...

    async def list_tasks(self, project_id: str) -> list[ProjectTask]:
        """查询项目任务"""
        ...

    async def set_cover_image(self, project_id: str, cover_image_ref: str) -> None:
        """记录封面图"""
        ...


class MessageStore(Protocol):
    """对话日志存储接口（append-only）"""

    async def append_message(
        self,
        conversation_id: str,
        user_id: str,
        role: MessageRole,
        content: str,
    ) -> ChatMessage:
        """追加消息"""
        ...

    async def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        """按顺序返回全部消息"""
        ...


class VoiceSessionStore(Protocol):
    """语音会话存储接口"""

    async def create_session(
        self,
        user_id: str,
        conversation_id: str | None = None,
        audio_bytes: int = 0,
    ) -> VoiceSession:
        """创建会话"""
        ...

    async def update_session(
        self,
        session_id: str,
        processing_status: VoiceProcessingStatus,
        *,
        transcription: str | None = None,
        error_message: str | None = None,
        processing_time_ms: int | None = None,
        confidence: float | None = None,
        language: str | None = None,
    ) -> None:
        """更新会话"""
        ...

    async def get_session(self, session_id: str) -> VoiceSession | None:
        """查询会话"""
        ...
