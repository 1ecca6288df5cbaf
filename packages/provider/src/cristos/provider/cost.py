"""CostTracker -- 成本与 token 统计

成本双通道：completion_cost() -> _hidden_params.response_cost -> (0.0, True)。
所有方法不抛异常。
"""

import contextlib

import structlog
from litellm import completion_cost

from .models import TokenUsage

log = structlog.get_logger()


class CostTracker:
    """成本追踪器

    静态方法：计算成本、解析 token 使用、提取模型信息、汇总多次调用的用量。
    """

    @staticmethod
    def calculate_cost(response) -> tuple[float, bool]:
        """从 LiteLLM 响应计算 USD 成本

        Returns:
            (cost_usd, cost_unavailable) 元组
        """
        try:
            cost = completion_cost(completion_response=response)
            if cost is not None and cost >= 0:
                return float(cost), False
        except Exception as e:
            log.debug("completion_cost_failed", error=str(e))

        hidden = getattr(response, "_hidden_params", None)
        if isinstance(hidden, dict):
            cost = hidden.get("response_cost")
            if isinstance(cost, int | float) and cost >= 0:
                return float(cost), False

        log.warning("cost_unavailable")
        return 0.0, True

    @staticmethod
    def parse_usage(response) -> TokenUsage:
        """解析 token 使用数据（失败时返回全零）"""
        usage = getattr(response, "usage", None)
        if usage is None:
            return TokenUsage()
        try:
            return TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            )
        except Exception as e:
            log.debug("parse_usage_failed", error=str(e))
            return TokenUsage()

    @staticmethod
    def extract_model_info(response) -> tuple[str, str]:
        """提取 (model_name, provider)"""
        model_name = ""
        provider = ""

        with contextlib.suppress(Exception):
            model_name = getattr(response, "model", "") or ""

        with contextlib.suppress(Exception):
            hidden = getattr(response, "_hidden_params", None)
            if isinstance(hidden, dict):
                provider = hidden.get("custom_llm_provider", "") or ""

        return model_name, provider

    @staticmethod
    def combine(*usages: TokenUsage | None) -> TokenUsage:
        """汇总一轮内多次调用（摘要 + 主调用）的 token 用量"""
        total = TokenUsage()
        for usage in usages:
            if usage is None:
                continue
            total.prompt_tokens += usage.prompt_tokens
            total.completion_tokens += usage.completion_tokens
            total.total_tokens += usage.total_tokens
        return total
