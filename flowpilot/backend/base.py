"""
浏览器后端抽象基类

定义执行引擎消费的后端契约：每次调用执行一个离散动作，
返回原始输出或带类型的错误。
"""

from abc import ABC, abstractmethod
from typing import Dict, Sequence

from flowpilot.backend.output import SnapshotRef
from flowpilot.core.context import ExecuteOptions
from flowpilot.core.result import Result


class BrowserBackend(ABC):
    """
    浏览器后端抽象基类

    所有后端实现必须继承此类。预期内的失败（未安装、命令失败、超时、
    输出格式错误）全部通过 Result 返回。
    """

    @abstractmethod
    async def invoke(
        self,
        action: str,
        args: Sequence[str],
        options: ExecuteOptions = None,
    ) -> Result[str]:
        """
        执行一个后端动作

        Args:
            action: 动作名称（open、click、wait 等）
            args: 动作参数
            options: 调用选项（会话、有头模式、超时、工作目录）

        Returns:
            Result[str]: 成功时为原始标准输出
        """
        ...

    @abstractmethod
    async def snapshot(self, options: ExecuteOptions = None) -> Result[Dict[str, SnapshotRef]]:
        """
        获取当前可交互元素快照

        Returns:
            Result: 成功时为 {refId: SnapshotRef(name, role)}
        """
        ...

    @abstractmethod
    async def close(self, session_name: str) -> Result[None]:
        """关闭指定会话"""
        ...

    @abstractmethod
    async def check(self) -> Result[None]:
        """检查后端是否可用"""
        ...


__all__ = [
    "BrowserBackend",
]
