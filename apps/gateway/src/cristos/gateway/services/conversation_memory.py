"""ConversationMemory -- 对话记忆与摘要策略

消息数不超过阈值时返回完整日志；超过阈值时调用 LLM 生成一次摘要，
返回摘要 + 最近若干条消息。摘要每次重新计算、不回写；摘要失败时返回
降级占位文本，不让本轮失败。
"""

import structlog
from cristos.core.config import get_memory_recent_messages, get_memory_summary_threshold
from cristos.core.models import ChatMessage
from cristos.core.store.protocols import MessageStore
from cristos.provider import LLMConfig, RetryingModelClient, TokenUsage
from pydantic import BaseModel, Field

from .prompts import SUMMARY_SYSTEM_PROMPT, build_summary_messages

log = structlog.get_logger()

SUMMARY_UNAVAILABLE = "Conversation summary unavailable"
SUMMARY_MAX_TOKENS = 300
SUMMARY_TEMPERATURE = 0.3


class MemorySnapshot(BaseModel):
    """一次记忆读取的结果"""

    messages: list[dict[str, str]] = Field(default_factory=list)
    summary: str | None = None
    total_messages: int = 0
    usage: TokenUsage | None = None

    @property
    def summarized(self) -> bool:
        return self.summary is not None

    def to_prompt_messages(self) -> list[dict[str, str]]:
        """渲染为 prompt messages：摘要作为 system 消息前置"""
        prompt: list[dict[str, str]] = []
        if self.summary:
            prompt.append(
                {"role": "system", "content": f"Previous conversation summary: {self.summary}"}
            )
        prompt.extend(self.messages)
        return prompt


class ConversationMemory:
    """对话记忆服务"""

    def __init__(
        self,
        message_store: MessageStore,
        llm: RetryingModelClient,
        summary_threshold: int | None = None,
        recent_messages: int | None = None,
    ) -> None:
        self._messages = message_store
        self._llm = llm
        self._threshold = summary_threshold or get_memory_summary_threshold()
        self._recent = recent_messages or get_memory_recent_messages()

    async def get_memory(self, conversation_id: str | None) -> MemorySnapshot:
        """读取对话记忆

        Args:
            conversation_id: 对话 ID，None 时返回空记忆

        Returns:
            MemorySnapshot
        """
        if conversation_id is None:
            return MemorySnapshot()

        log_entries = await self._messages.list_messages(conversation_id)
        messages = [m.to_llm_message() for m in log_entries]
        if len(messages) <= self._threshold:
            return MemorySnapshot(messages=messages, total_messages=len(messages))

        summary, usage = await self.summarize(log_entries)
        log.info(
            "conversation_summarized",
            conversation_id=conversation_id,
            total_messages=len(messages),
            kept_messages=self._recent,
            degraded=summary == SUMMARY_UNAVAILABLE,
        )
        return MemorySnapshot(
            messages=messages[-self._recent :],
            summary=summary,
            total_messages=len(messages),
            usage=usage,
        )

    async def summarize(self, entries: list[ChatMessage]) -> tuple[str, TokenUsage | None]:
        """生成摘要，失败时返回占位文本"""
        transcript = "\n".join(f"{m.role.value.title()}: {m.content}" for m in entries)
        config = LLMConfig(
            model=self._llm.default_config.model,
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
            system_prompt=SUMMARY_SYSTEM_PROMPT,
        )
        outcome = await self._llm.complete(build_summary_messages(transcript), config)
        if not outcome.success or not outcome.text.strip():
            log.warning("conversation_summary_failed", error=outcome.error)
            return SUMMARY_UNAVAILABLE, outcome.usage
        return outcome.text.strip(), outcome.usage
