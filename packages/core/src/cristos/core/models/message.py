"""ChatMessage Domain Model -- 对话日志中的一条消息"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .enums import MessageRole


class ChatMessage(BaseModel):
    """对话日志条目，按写入顺序读取"""

    message_id: str = Field(description="唯一标识，ULID 格式")
    conversation_id: str = Field(description="所属对话")
    user_id: str = Field(description="所属用户")
    role: MessageRole = Field(description="消息角色")
    content: str = Field(description="文本内容")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_llm_message(self) -> dict[str, str]:
        """转换为 LLM messages 格式"""
        return {"role": self.role.value, "content": self.content}
