"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、模型与转写客户端初始化、
组装服务装配、路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from cristos.core.config import (
    cover_images_enabled,
    get_artifacts_dir,
    get_cover_image_base_url,
    get_db_path,
)
from cristos.core.store import StoreGroup, create_store_group
from cristos.provider import (
    EchoMessageAdapter,
    LiteLLMClient,
    LLMConfig,
    ProviderConfig,
    RetryingModelClient,
    RetryingTranscriptionClient,
    RetryPolicy,
    WhisperTranscriptionClient,
    load_provider_config,
)
from fastapi import FastAPI

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import assembly, health, users, voice
from .services.assembly_engine import AssemblyEngine
from .services.conversation_memory import ConversationMemory
from .services.image_jobs import BackgroundImageJobQueue, CoverImageGenerator
from .services.project_committer import ProjectCommitter
from .services.voice_ingestion import VoiceIngestionService

log = structlog.get_logger()


def build_retry_policies(provider_config: ProviderConfig) -> tuple[RetryPolicy, RetryPolicy]:
    """模型调用与转写的重试策略：(model, transcription)，单次尝试均有超时上限"""
    model_policy = RetryPolicy(
        max_attempts=provider_config.model_max_attempts,
        attempt_timeout_s=provider_config.timeout_s,
    )
    transcription_policy = RetryPolicy(
        max_attempts=provider_config.transcription_max_attempts,
        attempt_timeout_s=provider_config.transcription_timeout_s,
    )
    return model_policy, transcription_policy


def install_services(
    app: FastAPI,
    store_group: StoreGroup,
    llm: RetryingModelClient,
    transcriber: RetryingTranscriptionClient,
    image_queue: BackgroundImageJobQueue,
    llm_config: LLMConfig | None = None,
) -> None:
    """装配组装服务并挂到 app.state"""
    committer = ProjectCommitter(
        store_group.state_store,
        store_group.project_store,
        image_queue,
    )
    memory = ConversationMemory(store_group.message_store, llm)
    engine = AssemblyEngine(
        state_store=store_group.state_store,
        identity_store=store_group.user_store,
        message_store=store_group.message_store,
        llm=llm,
        memory=memory,
        committer=committer,
        llm_config=llm_config,
    )
    app.state.store_group = store_group
    app.state.image_queue = image_queue
    app.state.assembly_engine = engine
    app.state.voice_ingestion = VoiceIngestionService(
        transcriber,
        store_group.voice_store,
        engine,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与服务，关闭时清理连接与后台任务"""
    # 启动：初始化 Store
    db_path = get_db_path()
    artifacts_dir = get_artifacts_dir()
    store_group = await create_store_group(db_path, artifacts_dir)
    app.state.store_group = store_group

    # 模型与转写客户端（根据配置选择模式）
    provider_config = load_provider_config()
    app.state.provider_config = provider_config
    proxy_api_key = provider_config.proxy_api_key.get_secret_value()

    if provider_config.llm_mode == "litellm":
        litellm_client = LiteLLMClient(
            proxy_base_url=provider_config.proxy_base_url,
            proxy_api_key=proxy_api_key,
            timeout_s=provider_config.timeout_s,
        )
        completion_backend = litellm_client
        app.state.litellm_client = litellm_client
        log.info(
            "llm_service_initialized",
            mode="litellm",
            model=provider_config.model,
            proxy_url=provider_config.proxy_base_url or None,
            timeout_s=provider_config.timeout_s,
        )
    else:
        completion_backend = EchoMessageAdapter()
        app.state.litellm_client = None
        log.info("llm_service_initialized", mode="echo")

    model_policy, transcription_policy = build_retry_policies(provider_config)
    llm = RetryingModelClient(
        completion_backend,
        model_policy,
        default_config=provider_config.llm_config(),
    )
    transcriber = RetryingTranscriptionClient(
        WhisperTranscriptionClient(
            proxy_base_url=provider_config.proxy_base_url,
            proxy_api_key=proxy_api_key,
            timeout_s=provider_config.transcription_timeout_s,
        ),
        transcription_policy,
        default_config=provider_config.transcription_config(),
    )

    # 封面图后台任务
    generator = None
    if cover_images_enabled():
        generator = CoverImageGenerator(
            store_group.project_store,
            store_group.artifacts_dir,
            get_cover_image_base_url(),
        )
    image_queue = BackgroundImageJobQueue(generator)

    install_services(
        app,
        store_group,
        llm,
        transcriber,
        image_queue,
        llm_config=provider_config.llm_config(),
    )

    yield

    # 关闭：等待封面图任务，清理数据库连接
    await image_queue.drain()
    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Cristos Gateway",
        version="0.1.0",
        description="Cristos 对话式项目组装 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire()

    # 注册路由
    app.include_router(assembly.router, tags=["assembly"])
    app.include_router(voice.router, tags=["voice"])
    app.include_router(users.router, tags=["users"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
