"""Cristos Provider -- LLM 与语音转写调用抽象层

packages/provider 的公开接口导出。
"""

# 核心组件
from .client import LiteLLMClient

# 配置
from .config import ProviderConfig, load_provider_config
from .cost import CostTracker
from .echo_adapter import EchoMessageAdapter

# 异常
from .exceptions import (
    ProviderError,
    ProxyUnreachableError,
    RateLimitedError,
    RetryExhaustedError,
    TranscriptionError,
)

# 数据模型
from .models import (
    CompletionOutcome,
    LLMConfig,
    ModelCallResult,
    TokenUsage,
    TranscriptionConfig,
    TranscriptionOutcome,
    TranscriptionResult,
)

# 重试
from .retry import RetryPolicy, default_is_retryable, exponential_backoff
from .retrying import RetryingModelClient, RetryingTranscriptionClient
from .transcription import WhisperTranscriptionClient

__all__ = [
    "ModelCallResult",
    "TokenUsage",
    "LLMConfig",
    "CompletionOutcome",
    "TranscriptionConfig",
    "TranscriptionResult",
    "TranscriptionOutcome",
    "LiteLLMClient",
    "WhisperTranscriptionClient",
    "EchoMessageAdapter",
    "CostTracker",
    "RetryPolicy",
    "exponential_backoff",
    "default_is_retryable",
    "RetryingModelClient",
    "RetryingTranscriptionClient",
    "ProviderConfig",
    "load_provider_config",
    "ProviderError",
    "ProxyUnreachableError",
    "RateLimitedError",
    "RetryExhaustedError",
    "TranscriptionError",
]
