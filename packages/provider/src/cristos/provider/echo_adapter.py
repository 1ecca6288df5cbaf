"""EchoMessageAdapter -- Echo 模式 completion 后端

本地开发/测试时替代 LiteLLM：回显最后一条 user 消息。
用户输入中的标签原样回显，因此可以不依赖真实模型演练整条组装流水线。
"""

import asyncio
import time

from .models import LLMConfig, ModelCallResult, TokenUsage


class EchoMessageAdapter:
    """complete(messages, config) -> ModelCallResult 的回声实现"""

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig | None = None,
    ) -> ModelCallResult:
        """回显最后一条 user 消息

        token 按空白分词估算；provider 固定为 "echo"，成本为 0。
        """
        start_time = time.monotonic()
        user_content = self._extract_last_user_content(messages)

        # 模拟少量延迟
        await asyncio.sleep(0.01)

        response_text = f"Echo: {user_content}"
        prompt_tokens = len(user_content.split())
        completion_tokens = len(response_text.split())

        return ModelCallResult(
            content=response_text,
            model_name="echo",
            provider="echo",
            duration_ms=int((time.monotonic() - start_time) * 1000),
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    @staticmethod
    def _extract_last_user_content(messages: list[dict[str, str]]) -> str:
        """最后一条 user 消息；没有时取最后一条消息，空列表返回 "(empty)" """
        for msg in reversed(messages):
            if msg.get("role") == "user":
                return msg.get("content", "")
        if messages:
            return messages[-1].get("content", "(empty)")
        return "(empty)"
