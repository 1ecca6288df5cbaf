"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、artifacts 目录、对话记忆阈值等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("CRISTOS_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "CRISTOS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "cristos.db"),
    )


def get_artifacts_dir() -> Path:
    """获取 Artifact 文件存储目录（封面图等）"""
    return Path(
        os.environ.get(
            "CRISTOS_ARTIFACTS_DIR",
            str(_get_base_dir() / "artifacts"),
        )
    )


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_memory_summary_threshold() -> int:
    """消息数超过该阈值时触发摘要"""
    return _int_env("CRISTOS_MEMORY_SUMMARY_THRESHOLD", 10)


def get_memory_recent_messages() -> int:
    """摘要模式下保留的最近消息条数"""
    return _int_env("CRISTOS_MEMORY_RECENT_MESSAGES", 5)


def cover_images_enabled() -> bool:
    """是否启用封面图生成"""
    return os.environ.get("CRISTOS_COVER_IMAGES", "on").lower() not in {"off", "0", "false"}


def get_cover_image_base_url() -> str:
    """封面图生成服务地址"""
    return os.environ.get(
        "CRISTOS_COVER_IMAGE_BASE_URL",
        "https://image.pollinations.ai/prompt",
    )


# 前端/测试使用的占位 conversation id，视为缺失
PLACEHOLDER_CONVERSATION_ID: str = "00000000-0000-0000-0000-000000000000"

# 日志中消息预览截断长度
MESSAGE_PREVIEW_LENGTH: int = 200

# 单个音频文件大小上限（字节）
MAX_AUDIO_BYTES: int = 25 * 1024 * 1024
