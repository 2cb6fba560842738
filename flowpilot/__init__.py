"""
flowpilot - 声明式浏览器自动化流程执行引擎

将 YAML 中的有序命令列表通过 agent-browser 后端逐步执行，
自动等待目标元素出现，汇总单个或多个流程的执行结果。

使用示例:
```python
import asyncio
from flowpilot import FlowRunner

async def main():
    runner = FlowRunner()
    result = await runner.run_files(["login.yaml", "search.yaml"])
    if result.success:
        print(result.data.passed, "/", result.data.total)

asyncio.run(main())
```
"""

from .core import Result, Error, ErrorCode, SessionSpec
from .flows import Flow, FlowEngine, FlowExecutionOptions, FlowResult, SelectorSpec
from .runner import FlowRunner, RunOptions, RunSummary, run_flows

__version__ = "0.1.0"

__all__ = [
    "Result",
    "Error",
    "ErrorCode",
    "SessionSpec",
    "Flow",
    "FlowEngine",
    "FlowExecutionOptions",
    "FlowResult",
    "SelectorSpec",
    "FlowRunner",
    "RunOptions",
    "RunSummary",
    "run_flows",
    "__version__",
]
