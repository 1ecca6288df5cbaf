"""Provider 异常体系"""


class ProviderError(Exception):
    """Provider 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ProxyUnreachableError(ProviderError):
    """LiteLLM Proxy / 上游不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, proxy_url: str, original_error: Exception) -> None:
        """
        Args:
            proxy_url: 尝试连接的地址
            original_error: 原始异常
        """
        super().__init__(
            f"LLM 上游不可达: {proxy_url} -- {original_error}",
            recoverable=True,
        )
        self.proxy_url = proxy_url
        self.original_error = original_error


class RateLimitedError(ProviderError):
    """上游限流（HTTP 429 / rate_limit）

    与普通失败区分开，重试策略据此放宽退避倍数。
    """

    def __init__(self, message: str = "rate limited") -> None:
        super().__init__(message, recoverable=True)


class TranscriptionError(ProviderError):
    """转写失败，带 HTTP 状态映射后的可读信息"""

    def __init__(self, message: str, status_code: int | None = None, recoverable: bool = True):
        super().__init__(message, recoverable=recoverable)
        self.status_code = status_code


class RetryExhaustedError(ProviderError):
    """重试次数耗尽"""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(
            f"重试 {attempts} 次后仍失败: {last_error}",
            recoverable=False,
        )
        self.attempts = attempts
        self.last_error = last_error
