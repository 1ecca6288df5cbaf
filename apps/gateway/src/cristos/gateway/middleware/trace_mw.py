"""TraceMiddleware -- 组装会话追踪

把 user_id / conversation_id（查询参数）与 state_id / session_id（路径）
绑定到 structlog contextvars，使一轮对话内的日志可按会话串联。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 路径段 -> 绑定的上下文键
_PATH_KEYS = {"states": "state_id", "voice-sessions": "voice_session_id"}
_QUERY_KEYS = ("user_id", "conversation_id")


class TraceMiddleware(BaseHTTPMiddleware):
    """会话级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        context: dict[str, str] = {}

        parts = [part for part in request.url.path.split("/") if part]
        for i, part in enumerate(parts[:-1]):
            if part in _PATH_KEYS:
                context[_PATH_KEYS[part]] = parts[i + 1]

        for key in _QUERY_KEYS:
            if value := request.query_params.get(key):
                context[key] = value

        if context:
            structlog.contextvars.bind_contextvars(**context)

        return await call_next(request)
