"""
命令处理器注册表

按命令标签分派到对应的处理函数。处理函数签名：

    async def handler(backend, command, ctx) -> Result[Optional[str]]

成功时 data 为后端标准输出。
"""

from typing import Awaitable, Callable, Dict, Iterable, Optional

from flowpilot.backend.base import BrowserBackend
from flowpilot.core.result import Result
from flowpilot.flows.commands import BaseCommand
from flowpilot.flows.context import ExecutionContext


Handler = Callable[[BrowserBackend, BaseCommand, ExecutionContext], Awaitable[Result[Optional[str]]]]


class HandlerRegistry:
    """命令处理器注册表"""

    _handlers: Dict[str, Handler] = {}

    @classmethod
    def register(cls, command: str) -> Callable[[Handler], Handler]:
        """注册处理器（装饰器）"""
        def decorator(func: Handler) -> Handler:
            if command in cls._handlers:
                raise ValueError(f"命令处理器重复注册: {command}")
            cls._handlers[command] = func
            return func
        return decorator

    @classmethod
    def get(cls, command: str) -> Handler:
        """获取处理器"""
        if command not in cls._handlers:
            raise KeyError(f"未注册的命令: {command}")
        return cls._handlers[command]

    @classmethod
    def commands(cls) -> Iterable[str]:
        return cls._handlers.keys()

    @classmethod
    def verify(cls, expected: Iterable[str]) -> None:
        """
        校验每个命令标签都有处理器

        Raises:
            RuntimeError: 存在缺失或多余的处理器
        """
        expected = set(expected)
        registered = set(cls._handlers)
        missing = expected - registered
        unknown = registered - expected
        if missing or unknown:
            raise RuntimeError(
                f"命令处理器不完整: 缺少 {sorted(missing)}，未知 {sorted(unknown)}"
            )


__all__ = [
    "Handler",
    "HandlerRegistry",
]
