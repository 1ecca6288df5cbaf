"""数据模型 -- TokenUsage / ModelCallResult / LLMConfig / 转写结果

所有 provider（LiteLLM、Whisper、Echo、Mock）统一返回这些类型。
"""

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = (
    "You are an AI assistant that helps users create and manage projects. "
    "Be concise, practical and friendly."
)


class TokenUsage(BaseModel):
    """Token 使用统计

    key 命名对齐 OpenAI/LiteLLM 行业标准：
    prompt_tokens / completion_tokens / total_tokens
    """

    prompt_tokens: int = Field(default=0, ge=0, description="输入 token 数")
    completion_tokens: int = Field(default=0, ge=0, description="输出 token 数")
    total_tokens: int = Field(default=0, ge=0, description="总 token 数")


class LLMConfig(BaseModel):
    """单次 completion 的调用参数"""

    model: str = Field(default="gpt-4o-mini", description="模型名称或 Proxy group")
    max_tokens: int = Field(default=4000, ge=1, description="最大生成 token 数")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="采样温度")
    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="messages 中没有 system 消息时自动前置",
    )


class ModelCallResult(BaseModel):
    """LLM 调用结果

    包含响应内容、路由信息、成本数据。
    """

    content: str = Field(description="LLM 响应文本内容")
    model_name: str = Field(default="", description="实际调用的模型名称（如 gpt-4o-mini）")
    provider: str = Field(default="", description="实际 provider（如 openai）")
    duration_ms: int = Field(ge=0, description="端到端耗时（毫秒）")
    token_usage: TokenUsage = Field(
        default_factory=TokenUsage,
        description="Token 使用详情",
    )
    cost_usd: float = Field(default=0.0, ge=0.0, description="本次调用的 USD 成本")
    cost_unavailable: bool = Field(
        default=False,
        description="成本数据是否不可用（双通道均失败时为 True）",
    )


class CompletionOutcome(BaseModel):
    """带重试的 completion 结果，失败时不抛异常"""

    success: bool
    text: str = ""
    usage: TokenUsage | None = None
    error: str | None = None
    attempts: int = Field(default=0, description="实际尝试次数")
    rate_limited: bool = Field(default=False, description="是否遇到过限流")


class TranscriptionConfig(BaseModel):
    """转写调用参数"""

    model: str = Field(default="whisper-1", description="转写模型")
    language: str | None = Field(default="en", description="语言提示")
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    prompt: str | None = Field(default=None, description="上下文提示词")
    filename: str = Field(default="audio.m4a", description="上传文件名，供服务端推断格式")


class TranscriptionResult(BaseModel):
    """单次转写结果"""

    text: str
    confidence: float | None = None
    language: str | None = None
    duration_ms: int | None = Field(default=None, description="音频时长（毫秒）")
    processing_time_ms: int = Field(default=0, ge=0)


class TranscriptionOutcome(BaseModel):
    """带重试的转写结果，失败时不抛异常"""

    success: bool
    text: str = ""
    confidence: float | None = None
    language: str | None = None
    duration_ms: int | None = None
    processing_time_ms: int = 0
    error: str | None = None
    attempts: int = 0
