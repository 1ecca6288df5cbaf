"""LiteLLMClient -- LanguageModelClient 的 LiteLLM 实现

通过 litellm.acompletion() 调用（直连 provider 或经 LiteLLM Proxy），
内部集成 CostTracker。限流单独抛出 RateLimitedError，供重试策略放宽退避。
"""

import time

import httpx
import structlog
from litellm import acompletion

from .cost import CostTracker
from .exceptions import ProviderError, ProxyUnreachableError, RateLimitedError
from .models import LLMConfig, ModelCallResult

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 连接类异常类型集合（触发 ProxyUnreachableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
)


def _is_connection_error(e: Exception) -> bool:
    """判断异常是否为连接类错误（上游不可达）"""
    if isinstance(e, _CONNECTION_ERROR_TYPES):
        return True
    # LiteLLM 的 APIConnectionError 也属于连接类错误
    error_name = type(e).__name__
    return error_name in ("APIConnectionError", "APITimeoutError", "Timeout")


def is_rate_limit_error(e: Exception) -> bool:
    """判断异常是否为限流（429 / rate_limit）"""
    if type(e).__name__ == "RateLimitError":
        return True
    if getattr(e, "status_code", None) == 429:
        return True
    text = str(e).lower()
    return "rate_limit" in text or "rate limit" in text or "429" in text


def with_system_prompt(
    messages: list[dict[str, str]],
    system_prompt: str,
) -> list[dict[str, str]]:
    """messages 中没有 system 消息时前置 system_prompt"""
    if not system_prompt or any(m.get("role") == "system" for m in messages):
        return list(messages)
    return [{"role": "system", "content": system_prompt}, *messages]


class LiteLLMClient:
    """LiteLLM 客户端

    封装 litellm.acompletion() 调用，集成 CostTracker 计算成本。
    proxy_base_url 为空时直连 provider（密钥由 LiteLLM 从环境变量读取）。
    """

    def __init__(
        self,
        proxy_base_url: str = "",
        proxy_api_key: str = "",
        timeout_s: int = 30,
    ) -> None:
        """初始化客户端

        Args:
            proxy_base_url: Proxy 基础 URL，空字符串表示直连
            proxy_api_key: Proxy 访问密钥（LITELLM_PROXY_KEY）
            timeout_s: 请求超时（秒）
        """
        self._proxy_base_url = proxy_base_url.rstrip("/")
        self._proxy_api_key = proxy_api_key
        self._timeout_s = timeout_s

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig | None = None,
    ) -> ModelCallResult:
        """发送 chat completion 请求

        Args:
            messages: 消息列表，格式 [{"role": "user", "content": "..."}]
            config: 模型/温度/最大 token/系统提示词

        Returns:
            ModelCallResult，包含响应、成本、路由信息

        Raises:
            RateLimitedError: 上游限流
            ProxyUnreachableError: 连接失败或超时
            ProviderError: 其他上游错误（模型不可用、配额耗尽等）
        """
        config = config or LLMConfig()
        start_time = time.monotonic()
        messages = with_system_prompt(messages, config.system_prompt)

        try:
            call_kwargs = {
                "model": config.model,
                "messages": messages,
                "temperature": config.temperature,
                "max_tokens": config.max_tokens,
                "timeout": self._timeout_s,
            }
            if self._proxy_base_url:
                call_kwargs["api_base"] = self._proxy_base_url
                call_kwargs["api_key"] = self._proxy_api_key or "no-key"

            log.debug(
                "litellm_call_start",
                model=config.model,
                message_count=len(messages),
            )

            response = await acompletion(**call_kwargs)

            duration_ms = int((time.monotonic() - start_time) * 1000)
            content = response.choices[0].message.content or ""
            cost_usd, cost_unavailable = CostTracker.calculate_cost(response)
            token_usage = CostTracker.parse_usage(response)
            model_name, provider = CostTracker.extract_model_info(response)

            log.info(
                "litellm_call_completed",
                model=config.model,
                model_name=model_name,
                provider=provider,
                duration_ms=duration_ms,
                total_tokens=token_usage.total_tokens,
                cost_usd=cost_usd,
            )

            return ModelCallResult(
                content=content,
                model_name=model_name or config.model,
                provider=provider,
                duration_ms=duration_ms,
                token_usage=token_usage,
                cost_usd=cost_usd,
                cost_unavailable=cost_unavailable,
            )

        except ProviderError:
            raise
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            log.error(
                "litellm_call_failed",
                model=config.model,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )
            if is_rate_limit_error(e):
                raise RateLimitedError(f"LLM 限流: {e}") from e
            if _is_connection_error(e):
                raise ProxyUnreachableError(
                    proxy_url=self._proxy_base_url or config.model,
                    original_error=e,
                ) from e
            raise ProviderError(
                message=f"LLM 调用失败: {e}",
                recoverable=True,
            ) from e

    async def health_check(self) -> bool:
        """检查 LiteLLM Proxy 可达性

        直连模式下没有可探测的端点，视为可用。
        此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        if not self._proxy_base_url:
            return True
        url = f"{self._proxy_base_url}/health/liveliness"
        try:
            async with httpx.AsyncClient() as http_client:
                resp = await http_client.get(url, timeout=HEALTH_CHECK_TIMEOUT_S)
                return resp.status_code == 200
        except Exception as e:
            log.debug("health_check_failed", url=url, error=str(e))
            return False
