"""apps/gateway 测试配置 -- 脚本化模型后端 + 绕过 lifespan 的 app fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from cristos.core.store import StoreGroup, create_store_group
from cristos.gateway.services.assembly_engine import AssemblyEngine
from cristos.gateway.services.conversation_memory import ConversationMemory
from cristos.gateway.services.project_committer import ProjectCommitter
from cristos.provider import (
    LLMConfig,
    ModelCallResult,
    ProviderError,
    RetryingModelClient,
    RetryingTranscriptionClient,
    RetryPolicy,
    TokenUsage,
    TranscriptionResult,
)
from httpx import ASGITransport, AsyncClient


class ScriptedBackend:
    """按顺序返回预设回复的 completion 后端

    回复为 Exception 实例时抛出；脚本耗尽时抛出可重试错误。
    """

    def __init__(self, replies: list | None = None) -> None:
        self.replies: list = list(replies or [])
        self.calls: list[list[dict[str, str]]] = []
        self.configs: list[LLMConfig | None] = []

    def push(self, *replies) -> None:
        self.replies.extend(replies)

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig | None = None,
    ) -> ModelCallResult:
        self.calls.append(messages)
        self.configs.append(config)
        if not self.replies:
            raise ProviderError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ModelCallResult(
            content=reply,
            model_name="scripted",
            provider="test",
            duration_ms=1,
            token_usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


class RecordingImageQueue:
    """记录投递的封面图任务"""

    def __init__(self) -> None:
        self.jobs: list[tuple[str, str, str, str]] = []

    def enqueue(self, name: str, description: str, category: str, project_id: str) -> None:
        self.jobs.append((name, description, category, project_id))


def no_sleep_policy(max_attempts: int) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, sleep=AsyncMock())


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """已登记用户 u1 的 StoreGroup"""
    group = await create_store_group(str(tmp_path / "test.db"), tmp_path / "artifacts")
    await group.user_store.create_user("u1", "User One")
    yield group
    await group.conn.close()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def llm(backend: ScriptedBackend) -> RetryingModelClient:
    return RetryingModelClient(backend, no_sleep_policy(5))


@pytest.fixture
def image_queue() -> RecordingImageQueue:
    return RecordingImageQueue()


@pytest.fixture
def committer(store_group: StoreGroup, image_queue: RecordingImageQueue) -> ProjectCommitter:
    return ProjectCommitter(store_group.state_store, store_group.project_store, image_queue)


@pytest.fixture
def memory(store_group: StoreGroup, llm: RetryingModelClient) -> ConversationMemory:
    return ConversationMemory(
        store_group.message_store, llm, summary_threshold=10, recent_messages=5
    )


@pytest.fixture
def engine(
    store_group: StoreGroup,
    llm: RetryingModelClient,
    memory: ConversationMemory,
    committer: ProjectCommitter,
) -> AssemblyEngine:
    return AssemblyEngine(
        state_store=store_group.state_store,
        identity_store=store_group.user_store,
        message_store=store_group.message_store,
        llm=llm,
        memory=memory,
        committer=committer,
    )


@pytest.fixture
def transcription_backend() -> AsyncMock:
    """转写后端，默认返回固定文本"""
    mock = AsyncMock()
    mock.transcribe.return_value = TranscriptionResult(
        text="I need to clean my room",
        confidence=0.9,
        language="en",
        processing_time_ms=25,
    )
    return mock


@pytest.fixture
def transcriber(transcription_backend: AsyncMock) -> RetryingTranscriptionClient:
    return RetryingTranscriptionClient(transcription_backend, no_sleep_policy(3))


@pytest_asyncio.fixture
async def test_app(
    tmp_path: Path,
    store_group: StoreGroup,
    llm: RetryingModelClient,
    transcriber: RetryingTranscriptionClient,
    image_queue: RecordingImageQueue,
):
    """创建测试用 FastAPI app 实例（手动装配，绕过 lifespan）"""
    os.environ["CRISTOS_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["CRISTOS_ARTIFACTS_DIR"] = str(tmp_path / "artifacts")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from cristos.gateway.main import create_app, install_services

    app = create_app()
    install_services(app, store_group, llm, transcriber, image_queue)

    yield app

    for key in ["CRISTOS_DB_PATH", "CRISTOS_ARTIFACTS_DIR", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
