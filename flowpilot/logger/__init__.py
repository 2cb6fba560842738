"""
日志系统模块

主要组件:
- LogConfig / configure_logging: 日志配置
- FormatterFactory: 日志格式化器
- ExecutionLogger: 流程执行日志

使用示例:
```python
from flowpilot.logger import LogConfig, LogLevel, configure_logging, ExecutionLogger

configure_logging(LogConfig(level=LogLevel.DEBUG))

journal = ExecutionLogger("login.yaml", session_name="flowpilot-18c2a-3f1e")
journal.start()
journal.step_start(0, "open")
journal.step_end(0, success=True, duration_ms=120)
journal.finish("passed")
journal.save_to_file("logs/login.json")
```
"""

from .config import (
    ROOT_LOGGER_NAME,
    LogLevel,
    LogFormat,
    LogConfig,
    configure_logging,
)

from .formatters import (
    SimpleFormatter,
    DetailedFormatter,
    JSONFormatter,
    FormatterFactory,
)

from .execution import (
    ExecutionLogEntry,
    ExecutionLogger,
)

__all__ = [
    # Config
    "ROOT_LOGGER_NAME",
    "LogLevel",
    "LogFormat",
    "LogConfig",
    "configure_logging",
    # Formatters
    "SimpleFormatter",
    "DetailedFormatter",
    "JSONFormatter",
    "FormatterFactory",
    # Execution Logger
    "ExecutionLogEntry",
    "ExecutionLogger",
]
