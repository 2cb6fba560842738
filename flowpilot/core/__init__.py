"""
核心模块

提供统一返回结果、错误码和后端调用上下文等基础类型。
"""

from .result import (
    Result,
    Error,
    ErrorCode,
)

from .context import (
    DEFAULT_SESSION_PREFIX,
    DEFAULT_COMMAND_TIMEOUT_MS,
    ExecuteOptions,
    SessionKind,
    SessionSpec,
    generate_session_name,
)

__all__ = [
    "Result",
    "Error",
    "ErrorCode",
    "DEFAULT_SESSION_PREFIX",
    "DEFAULT_COMMAND_TIMEOUT_MS",
    "ExecuteOptions",
    "SessionKind",
    "SessionSpec",
    "generate_session_name",
]
