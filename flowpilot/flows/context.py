"""
流程执行上下文

每个步骤拿到的上下文都是不可变值，自动等待解析出的目标
只会附加到上下文的副本上。
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from flowpilot.core.context import ExecuteOptions
from flowpilot.flows.commands import SelectorSpec


DEFAULT_AUTO_WAIT_TIMEOUT_MS = 30000
DEFAULT_AUTO_WAIT_INTERVAL_MS = 100


@dataclass(frozen=True)
class ResolvedTarget:
    """
    自动等待解析出的目标

    Attributes:
        selector: 后端可直接使用的选择器（@e1、CSS、xpath=...）
        source: 原始选择器
    """
    selector: str
    source: SelectorSpec

    @property
    def ref_id(self) -> Optional[str]:
        if self.selector.startswith("@"):
            return self.selector[1:]
        return None


@dataclass(frozen=True)
class ExecutionContext:
    """
    步骤执行上下文

    Attributes:
        session_name: 会话名称
        execute_options: 后端调用选项
        env: 环境变量（已展开到命令字段中）
        auto_wait_timeout_ms: 自动等待超时时间
        auto_wait_interval_ms: 自动等待轮询间隔
        screenshot_dir: 失败截图目录
        resolved_target: 当前步骤解析出的目标
    """
    session_name: str
    execute_options: ExecuteOptions
    env: Dict[str, str] = field(default_factory=dict)
    auto_wait_timeout_ms: int = DEFAULT_AUTO_WAIT_TIMEOUT_MS
    auto_wait_interval_ms: int = DEFAULT_AUTO_WAIT_INTERVAL_MS
    screenshot_dir: Optional[str] = None
    resolved_target: Optional[ResolvedTarget] = None

    def with_resolved_target(self, target: Optional[ResolvedTarget]) -> 'ExecutionContext':
        """返回附加了解析目标的副本"""
        return replace(self, resolved_target=target)

    def cli_selector(self, spec: SelectorSpec) -> str:
        """获取后端选择器，自动等待解析出的目标优先"""
        if self.resolved_target is not None:
            return self.resolved_target.selector
        return spec.to_cli()


__all__ = [
    "DEFAULT_AUTO_WAIT_TIMEOUT_MS",
    "DEFAULT_AUTO_WAIT_INTERVAL_MS",
    "ResolvedTarget",
    "ExecutionContext",
]
