"""错误类型

所有错误消息都直接面向用户。
"""

from __future__ import annotations

from typing import Optional


class PoolError(Exception):
    """poolctl 所有错误的基类"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class FlagConflictError(PoolError):
    """两个标志在当前集群拓扑下互相冲突"""

    def __init__(self, message: str, rule: Optional[str] = None):
        super().__init__(message)
        self.rule = rule


class InputFormatError(PoolError, ValueError):
    """输入格式错误：名称、副本数、价格等

    同时是 ValueError，可直接用作交互输入的校验器异常。
    """


class PromptAborted(PoolError):
    """交互输入被用户中断"""


class ApiError(PoolError):
    """控制平面 API 调用失败"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CloudError(PoolError):
    """云厂商 SDK 调用失败"""


__all__ = [
    "PoolError",
    "FlagConflictError",
    "InputFormatError",
    "PromptAborted",
    "ApiError",
    "CloudError",
]
