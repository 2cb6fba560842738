"""
流程执行模块

提供命令模型、选择器解析、步骤执行器和流程引擎。
"""

from .commands import (
    SelectorKind,
    SelectorSpec,
    Command,
    Flow,
    AUTO_WAIT_COMMANDS,
    requires_auto_wait,
)
from .context import ExecutionContext, ResolvedTarget
from .resolver import SelectorResolver, find_matching_refs
from .screenshot import ScreenshotResult, ScreenshotStatus
from .results import (
    StepStatus,
    FlowStatus,
    StepError,
    PassedStepResult,
    FailedStepResult,
    StepResult,
    FlowError,
    FlowResult,
)
from .executor import StepExecutor
from .engine import (
    FlowEngine,
    FlowExecutionOptions,
    StepProgress,
    StepProgressStatus,
)
from .parsers import FlowParser, load_flow

__all__ = [
    # Commands
    "SelectorKind",
    "SelectorSpec",
    "Command",
    "Flow",
    "AUTO_WAIT_COMMANDS",
    "requires_auto_wait",
    # Context
    "ExecutionContext",
    "ResolvedTarget",
    # Resolver
    "SelectorResolver",
    "find_matching_refs",
    # Results
    "ScreenshotResult",
    "ScreenshotStatus",
    "StepStatus",
    "FlowStatus",
    "StepError",
    "PassedStepResult",
    "FailedStepResult",
    "StepResult",
    "FlowError",
    "FlowResult",
    # Execution
    "StepExecutor",
    "FlowEngine",
    "FlowExecutionOptions",
    "StepProgress",
    "StepProgressStatus",
    # Parsers
    "FlowParser",
    "load_flow",
]
