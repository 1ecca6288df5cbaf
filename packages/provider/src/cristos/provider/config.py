"""ProviderConfig -- Provider 配置加载

从环境变量加载配置，不硬编码 provider 密钥。
非法数值回退为默认值并记录告警，不阻塞启动。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

from .models import LLMConfig, TranscriptionConfig

log = structlog.get_logger()


class ProviderConfig(BaseModel):
    """Provider 包配置 -- 从环境变量加载

    环境变量:
        LITELLM_PROXY_URL: Proxy 地址（默认空，直连 provider）
        LITELLM_PROXY_KEY: Proxy 访问密钥
        CRISTOS_LLM_MODE: LLM 运行模式（litellm/echo）
        CRISTOS_LLM_MODEL / CRISTOS_LLM_MAX_TOKENS / CRISTOS_LLM_TEMPERATURE
        CRISTOS_LLM_TIMEOUT_S: 单次调用超时（秒，默认 30）
        CRISTOS_TRANSCRIPTION_MODEL / CRISTOS_TRANSCRIPTION_LANGUAGE
        CRISTOS_MODEL_MAX_ATTEMPTS / CRISTOS_TRANSCRIPTION_MAX_ATTEMPTS
    """

    proxy_base_url: str = Field(default="", description="LiteLLM Proxy 基础 URL，空表示直连")
    proxy_api_key: SecretStr = Field(default=SecretStr(""), description="Proxy 访问密钥")
    llm_mode: Literal["litellm", "echo"] = Field(
        default="litellm",
        description="LLM 运行模式：litellm / echo",
    )
    model: str = Field(default="gpt-4o-mini", description="对话模型")
    max_tokens: int = Field(default=4000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_s: int = Field(default=30, ge=1, description="LLM 调用超时（秒）")
    transcription_model: str = Field(default="whisper-1")
    transcription_language: str = Field(default="en")
    transcription_timeout_s: int = Field(default=60, ge=1)
    model_max_attempts: int = Field(default=5, ge=1)
    transcription_max_attempts: int = Field(default=3, ge=1)

    def llm_config(self) -> LLMConfig:
        """默认对话调用参数"""
        return LLMConfig(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    def transcription_config(self) -> TranscriptionConfig:
        """默认转写参数"""
        return TranscriptionConfig(
            model=self.transcription_model,
            language=self.transcription_language or None,
        )


# 数值型环境变量 -> (字段名, 类型)
_NUMERIC_ENV: dict[str, tuple[str, type]] = {
    "CRISTOS_LLM_MAX_TOKENS": ("max_tokens", int),
    "CRISTOS_LLM_TEMPERATURE": ("temperature", float),
    "CRISTOS_LLM_TIMEOUT_S": ("timeout_s", int),
    "CRISTOS_TRANSCRIPTION_TIMEOUT_S": ("transcription_timeout_s", int),
    "CRISTOS_MODEL_MAX_ATTEMPTS": ("model_max_attempts", int),
    "CRISTOS_TRANSCRIPTION_MAX_ATTEMPTS": ("transcription_max_attempts", int),
}


def load_provider_config() -> ProviderConfig:
    """从环境变量加载 Provider 配置

    Returns:
        ProviderConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("LITELLM_PROXY_URL"):
        kwargs["proxy_base_url"] = val

    if val := os.environ.get("LITELLM_PROXY_KEY"):
        kwargs["proxy_api_key"] = SecretStr(val)

    if val := os.environ.get("CRISTOS_LLM_MODE"):
        kwargs["llm_mode"] = val

    if val := os.environ.get("CRISTOS_LLM_MODEL"):
        kwargs["model"] = val

    if val := os.environ.get("CRISTOS_TRANSCRIPTION_MODEL"):
        kwargs["transcription_model"] = val

    if (val := os.environ.get("CRISTOS_TRANSCRIPTION_LANGUAGE")) is not None:
        kwargs["transcription_language"] = val

    for env_var, (field, cast) in _NUMERIC_ENV.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field] = cast(val)
            except ValueError:
                log.warning(
                    "invalid_provider_config",
                    env_var=env_var,
                    value=val,
                    fallback=ProviderConfig.model_fields[field].default,
                )

    return ProviderConfig(**kwargs)
