"""AssemblyEngine -- 对话式项目组装的单轮编排

一轮的处理顺序：
1. 按 (user, conversation) 加载或创建组装状态
2. 读取对话记忆，构建 prompt，调用 LLM（带重试）
3. 解析标签 -> 解释为字段更新 -> 合并到状态 -> 重新推导步骤
4. 满足条件时提交项目；已提交后新增的任务同步到项目
5. 持久化状态，追加本轮用户/助手消息

同一 (user, conversation) 的轮次在进程内串行执行。
"""

import asyncio

import structlog
from cristos.core.assembly import (
    compute_progress,
    determine_current_step,
    identify_missing_info,
    merge_updates,
)
from cristos.core.config import MESSAGE_PREVIEW_LENGTH, PLACEHOLDER_CONVERSATION_ID
from cristos.core.exceptions import StateNotFoundError, UserNotFoundError
from cristos.core.models import (
    AssemblyProgress,
    AssemblyState,
    AssemblyStatus,
    AssemblyStep,
    MessageRole,
    Widget,
)
from cristos.core.parsing import TagParser, WidgetInterpreter
from cristos.core.store.protocols import IdentityStore, MessageStore, StateStore
from cristos.provider import CostTracker, LLMConfig, RetryingModelClient, TokenUsage
from pydantic import BaseModel, Field

from .conversation_memory import ConversationMemory, MemorySnapshot
from .project_committer import CommitResult, ProjectCommitter
from .prompts import build_turn_messages

log = structlog.get_logger()

APOLOGY_MESSAGE = "Sorry, I encountered an error. Please try again."
SETUP_FAILURE_MESSAGE = (
    "Sorry, I encountered an error while setting up the project creation session. "
    "Please try again."
)


def normalize_conversation_id(conversation_id: str | None) -> str | None:
    """空串与全零占位 id 视为缺失"""
    if conversation_id is None:
        return None
    conversation_id = conversation_id.strip()
    if not conversation_id or conversation_id == PLACEHOLDER_CONVERSATION_ID:
        return None
    return conversation_id


class AssemblyTurnResult(BaseModel):
    """单轮处理结果"""

    success: bool
    prose: str = Field(description="展示给用户的文本（已剥离标签）")
    widgets: list[Widget] = Field(default_factory=list)
    state: AssemblyState | None = None
    next_step: AssemblyStep | None = None
    missing_info: list[str] = Field(default_factory=list)
    committed: bool = Field(default=False, description="本轮是否创建了项目")
    project_id: str | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    usage: TokenUsage | None = None


class AssemblyEngine:
    """项目组装引擎"""

    def __init__(
        self,
        state_store: StateStore,
        identity_store: IdentityStore,
        message_store: MessageStore,
        llm: RetryingModelClient,
        memory: ConversationMemory,
        committer: ProjectCommitter,
        parser: TagParser | None = None,
        interpreter: WidgetInterpreter | None = None,
        llm_config: LLMConfig | None = None,
    ) -> None:
        self._states = state_store
        self._identity = identity_store
        self._messages = message_store
        self._llm = llm
        self._memory = memory
        self._committer = committer
        self._parser = parser or TagParser()
        self._interpreter = interpreter or WidgetInterpreter()
        self._llm_config = llm_config
        self._state_locks: dict[str, asyncio.Lock] = {}
        self._state_lock_users: dict[str, int] = {}
        self._state_locks_guard = asyncio.Lock()

    async def get_or_create_state(
        self,
        user_id: str,
        conversation_id: str | None,
    ) -> AssemblyState:
        """加载或创建组装状态

        先按 (conversation, user) 查询；未命中或 conversation_id 缺失时
        回退到该用户任意对话中最新的进行中状态；仍未命中才创建。

        Raises:
            UserNotFoundError: 用户不存在
        """
        state = None
        if conversation_id is not None:
            state = await self._states.get_state(conversation_id, user_id)
        if state is None:
            state = await self._states.get_latest_for_user(user_id)
            if state is not None and state.conversation_id != conversation_id:
                log.info(
                    "assembly_state_fallback",
                    state_id=state.state_id,
                    user_id=user_id,
                    conversation_id=conversation_id,
                    state_conversation_id=state.conversation_id,
                )
        if state is not None:
            return state

        if not await self._identity.user_exists(user_id):
            raise UserNotFoundError(user_id)
        state = await self._states.create_state(user_id, conversation_id)
        log.info(
            "assembly_state_created",
            state_id=state.state_id,
            user_id=user_id,
            conversation_id=conversation_id,
        )
        return state

    async def process_turn(
        self,
        user_id: str,
        conversation_id: str | None,
        text: str,
    ) -> AssemblyTurnResult:
        """处理一轮用户输入

        Returns:
            AssemblyTurnResult；失败时 success=False 并附带致歉文本
        """
        conversation_id = normalize_conversation_id(conversation_id)
        key = self._lock_key(user_id, conversation_id)
        lock = await self._get_state_lock(key)
        try:
            async with lock:
                return await self._process_turn(user_id, conversation_id, text)
        finally:
            await self._cleanup_state_lock(key)

    async def _process_turn(
        self,
        user_id: str,
        conversation_id: str | None,
        text: str,
    ) -> AssemblyTurnResult:
        log.info(
            "assembly_turn_started",
            user_id=user_id,
            conversation_id=conversation_id,
            text_preview=text[:MESSAGE_PREVIEW_LENGTH],
        )

        # 1. 状态
        try:
            state = await self.get_or_create_state(user_id, conversation_id)
        except UserNotFoundError:
            log.warning("assembly_user_not_found", user_id=user_id)
            return AssemblyTurnResult(
                success=False, prose=SETUP_FAILURE_MESSAGE, error="user_not_found"
            )
        except Exception as e:
            log.error("assembly_state_load_failed", user_id=user_id, error=str(e))
            return AssemblyTurnResult(
                success=False, prose=SETUP_FAILURE_MESSAGE, error="state_unavailable"
            )

        # 2. 记忆 + LLM
        log_conversation_id = conversation_id or state.conversation_id
        memory = await self._load_memory(log_conversation_id)
        messages = build_turn_messages(state, memory.to_prompt_messages(), text)
        outcome = await self._llm.complete(messages, self._llm_config)
        if not outcome.success:
            return AssemblyTurnResult(
                success=False,
                prose=APOLOGY_MESSAGE,
                state=state,
                next_step=state.current_step,
                missing_info=identify_missing_info(state),
                error="model_call_failed",
            )

        # 3. 解析 + 合并
        parsed = self._parser.parse(outcome.text)
        updates = self._interpreter.interpret_all(parsed.widgets)
        was_committed = state.is_committed
        report = merge_updates(state, updates)
        # 本轮 prompt 已携带模板提示
        if state.current_step == AssemblyStep.SUGGESTING_TASKS:
            state.templates_suggested = True
        step = determine_current_step(state)
        state.current_step = step

        # 4. 提交 / 同步
        warnings: list[str] = []
        commit = CommitResult(project_id=state.project_id)
        try:
            if was_committed:
                if report.tasks_added:
                    commit = await self._committer.sync_tasks(state, report.tasks_added)
            else:
                commit = await self._committer.commit_if_ready(state)
        except Exception as e:
            log.error(
                "project_commit_failed",
                state_id=state.state_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            commit = CommitResult(project_id=state.project_id, error="project_write_failed")
        warnings.extend(commit.warnings)
        if commit.error:
            warnings.append(commit.error)

        if state.status == AssemblyStatus.COMPLETED and step == AssemblyStep.CONFIRMING_PROJECT:
            state.current_step = AssemblyStep.COMPLETED

        # 5. 持久化
        try:
            await self._states.update_state(state)
        except Exception as e:
            log.error("assembly_state_persist_failed", state_id=state.state_id, error=str(e))
            return AssemblyTurnResult(
                success=False,
                prose=APOLOGY_MESSAGE,
                state=state,
                next_step=state.current_step,
                committed=commit.committed,
                project_id=state.project_id,
                warnings=warnings,
                error="state_persist_failed",
            )
        await self._record_messages(log_conversation_id, user_id, text, outcome.text)

        log.info(
            "assembly_turn_completed",
            state_id=state.state_id,
            user_id=user_id,
            step=state.current_step.value,
            widgets=len(parsed.widgets),
            updates_applied=report.applied,
            tasks_added=len(report.tasks_added),
            members_added=len(report.members_added),
            unknown_widgets=len(report.unknown),
            committed=commit.committed,
            project_id=state.project_id,
        )
        return AssemblyTurnResult(
            success=True,
            prose=parsed.prose,
            widgets=parsed.widgets,
            state=state,
            next_step=state.current_step,
            missing_info=identify_missing_info(state),
            committed=commit.committed,
            project_id=state.project_id,
            warnings=warnings,
            usage=CostTracker.combine(memory.usage, outcome.usage),
        )

    async def get_progress(
        self,
        user_id: str,
        conversation_id: str | None,
    ) -> tuple[AssemblyState, AssemblyProgress] | None:
        """查询当前状态与进度（不创建状态）"""
        conversation_id = normalize_conversation_id(conversation_id)
        state = None
        if conversation_id is not None:
            state = await self._states.get_state(conversation_id, user_id)
            if state is None:
                state = await self._states.get_latest_for_user(user_id)
        else:
            state = await self._states.get_latest_for_user(user_id, status=None)
        if state is None:
            return None
        return state, compute_progress(state)

    async def commit_state(self, state_id: str) -> tuple[AssemblyState, CommitResult]:
        """手动触发提交

        Raises:
            StateNotFoundError: 状态不存在
        """
        state = await self._states.get_state_by_id(state_id)
        if state is None:
            raise StateNotFoundError(state_id)
        key = self._lock_key(state.user_id, state.conversation_id)
        lock = await self._get_state_lock(key)
        try:
            async with lock:
                state = await self._states.get_state_by_id(state_id)
                if state is None:
                    raise StateNotFoundError(state_id)
                try:
                    result = await self._committer.commit_if_ready(state)
                    if result.committed:
                        if state.current_step == AssemblyStep.CONFIRMING_PROJECT:
                            state.current_step = AssemblyStep.COMPLETED
                        await self._states.update_state(state)
                except Exception as e:
                    log.error(
                        "project_commit_failed",
                        state_id=state_id,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    result = CommitResult(project_id=state.project_id, error="project_write_failed")
                return state, result
        finally:
            await self._cleanup_state_lock(key)

    async def _load_memory(self, conversation_id: str | None) -> MemorySnapshot:
        try:
            return await self._memory.get_memory(conversation_id)
        except Exception as e:
            log.warning(
                "conversation_memory_unavailable",
                conversation_id=conversation_id,
                error=str(e),
            )
            return MemorySnapshot()

    async def _record_messages(
        self,
        conversation_id: str | None,
        user_id: str,
        text: str,
        reply: str,
    ) -> None:
        if conversation_id is None:
            return
        try:
            await self._messages.append_message(conversation_id, user_id, MessageRole.USER, text)
            await self._messages.append_message(
                conversation_id, user_id, MessageRole.ASSISTANT, reply
            )
        except Exception as e:
            log.warning(
                "chat_message_append_failed",
                conversation_id=conversation_id,
                error=str(e),
            )

    @staticmethod
    def _lock_key(user_id: str, conversation_id: str | None) -> str:
        return f"{user_id}:{conversation_id or '*'}"

    async def _get_state_lock(self, key: str) -> asyncio.Lock:
        """获取 (user, conversation) 级别锁，串行化同一状态的轮次

        每次获取都登记一个使用者，须与 _cleanup_state_lock 成对调用。
        """
        async with self._state_locks_guard:
            lock = self._state_locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._state_locks[key] = lock
            self._state_lock_users[key] = self._state_lock_users.get(key, 0) + 1
            return lock

    async def _cleanup_state_lock(self, key: str) -> None:
        """注销使用者；无人持有或等待时移除 lock，避免字典无限增长"""
        async with self._state_locks_guard:
            remaining = self._state_lock_users.get(key, 0) - 1
            if remaining > 0:
                self._state_lock_users[key] = remaining
                return
            self._state_lock_users.pop(key, None)
            self._state_locks.pop(key, None)
