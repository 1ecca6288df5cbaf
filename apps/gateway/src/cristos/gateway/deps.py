"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

Store 与服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from cristos.core.store import StoreGroup
from fastapi import Request

from .services.assembly_engine import AssemblyEngine
from .services.voice_ingestion import VoiceIngestionService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_assembly_engine(request: Request) -> AssemblyEngine:
    """从 app.state 获取 AssemblyEngine 实例"""
    return request.app.state.assembly_engine


def get_voice_ingestion(request: Request) -> VoiceIngestionService:
    """从 app.state 获取 VoiceIngestionService 实例"""
    return request.app.state.voice_ingestion
