"""
后端调用上下文模块

提供后端调用选项和浏览器会话命名。
"""

import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


DEFAULT_SESSION_PREFIX = "flowpilot"
DEFAULT_COMMAND_TIMEOUT_MS = 30000


@dataclass(frozen=True)
class ExecuteOptions:
    """
    后端调用选项

    Attributes:
        session_name: 会话名称（后端会话亲和性的唯一键）
        headed: 是否以有头模式运行浏览器
        timeout_ms: 单次后端调用超时时间（毫秒）
        cwd: 后端进程工作目录
    """
    session_name: Optional[str] = None
    headed: bool = False
    timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS
    cwd: Optional[str] = None

    def with_timeout(self, timeout_ms: int) -> 'ExecuteOptions':
        """返回替换了超时时间的副本"""
        return replace(self, timeout_ms=timeout_ms)


class SessionKind(str, Enum):
    """会话指定方式"""
    NAME = "name"
    PREFIX = "prefix"
    DEFAULT = "default"


@dataclass(frozen=True)
class SessionSpec:
    """会话指定：固定名称、前缀生成或完全自动生成"""
    kind: SessionKind = SessionKind.DEFAULT
    value: Optional[str] = None

    @classmethod
    def named(cls, name: str) -> 'SessionSpec':
        return cls(kind=SessionKind.NAME, value=name)

    @classmethod
    def prefixed(cls, prefix: str) -> 'SessionSpec':
        return cls(kind=SessionKind.PREFIX, value=prefix)

    @classmethod
    def default(cls) -> 'SessionSpec':
        return cls()

    @property
    def is_pinned(self) -> bool:
        """是否为固定会话名"""
        return self.kind == SessionKind.NAME

    def resolve(self, default_prefix: str = DEFAULT_SESSION_PREFIX) -> str:
        """解析出会话名称"""
        if self.kind == SessionKind.NAME:
            return self.value
        if self.kind == SessionKind.PREFIX:
            return generate_session_name(self.value)
        return generate_session_name(default_prefix)


def generate_session_name(prefix: str = DEFAULT_SESSION_PREFIX) -> str:
    """
    生成唯一的会话名称

    后端通过 Unix 域套接字区分会话，路径长度有限，因此名称保持简短。

    Args:
        prefix: 会话名前缀

    Returns:
        {prefix}-{毫秒时间戳十六进制}-{4 位随机十六进制}
    """
    timestamp = format(int(time.time() * 1000), "x")
    return f"{prefix}-{timestamp}-{uuid.uuid4().hex[:4]}"


__all__ = [
    "DEFAULT_SESSION_PREFIX",
    "DEFAULT_COMMAND_TIMEOUT_MS",
    "ExecuteOptions",
    "SessionKind",
    "SessionSpec",
    "generate_session_name",
]
