"""Core 异常定义

组装引擎的领域错误。解析错误从不抛出（在 TagParser 内部吸收），
日期非法在 WidgetInterpreter 边界静默过滤，因此此处不定义对应异常。
"""


class CristosError(Exception):
    """Core 基础异常

    Attributes:
        message: 错误描述
        recoverable: 是否可通过重试恢复
    """

    def __init__(self, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class UserNotFoundError(CristosError):
    """身份存储中不存在该用户，无法创建组装状态"""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}", recoverable=False)
        self.user_id = user_id


class StateNotFoundError(CristosError):
    """组装状态不存在"""

    def __init__(self, state_id: str) -> None:
        super().__init__(f"Assembly state not found: {state_id}", recoverable=False)
        self.state_id = state_id


class InvalidStatusTransitionError(CristosError):
    """组装状态的非法流转（例如 completed -> in_progress）"""

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}",
            recoverable=False,
        )
        self.from_status = from_status
        self.to_status = to_status
