"""
日志格式化模块

ExecutionLogger 通过 extra 附带流程、会话、步骤等字段，
各格式化器在存在这些字段时把它们带进输出。
"""

import json
import logging
import time
from typing import Any, Dict, Optional


# 执行日志通过 extra 附带的字段
EXECUTION_FIELDS = ("flow_name", "session_name", "step_index", "command", "duration_ms")


def execution_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """取出记录上非空的执行字段"""
    fields = {}
    for name in EXECUTION_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


def step_label(record: logging.LogRecord) -> Optional[str]:
    """login.yaml#2(click) 形式的步骤标签，步骤序号从 1 开始显示"""
    flow_name = getattr(record, "flow_name", None)
    if flow_name is None:
        return None
    step_index = getattr(record, "step_index", None)
    if step_index is None:
        return flow_name
    command = getattr(record, "command", None)
    label = f"{flow_name}#{step_index + 1}"
    return f"{label}({command})" if command else label


class SimpleFormatter(logging.Formatter):
    """只输出消息，可选附带步骤耗时"""

    def __init__(self, fmt: str = None, show_duration: bool = True):
        super().__init__(fmt or "%(message)s")
        self.show_duration = show_duration

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        duration_ms = getattr(record, "duration_ms", None)
        if self.show_duration and duration_ms is not None:
            text = f"{text} ({duration_ms}ms)"
        return text


class DetailedFormatter(logging.Formatter):
    """
    时间 级别 记录器 [步骤标签] 消息

    例: 2024-05-01 10:00:00 INFO     flowpilot.execution [login.yaml#2(click)] ...
    """

    def __init__(self, include_logger: bool = True, include_location: bool = False):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.include_logger = include_logger
        self.include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        parts = [self.formatTime(record, self.datefmt), f"{record.levelname:<8}"]
        if self.include_logger:
            parts.append(record.name)
        if self.include_location:
            parts.append(f"{record.module}:{record.lineno}")

        label = step_label(record)
        if label:
            parts.append(f"[{label}]")
        parts.append(record.getMessage())

        text = " ".join(parts)
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class JSONFormatter(logging.Formatter):
    """每条记录一行 JSON，时间为 UTC ISO 8601"""

    def __init__(self, static_fields: Dict[str, Any] = None):
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(execution_fields(record))
        payload.update(self.static_fields)

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(payload, ensure_ascii=False, default=str)


class FormatterFactory:
    """按名称创建格式化器"""

    _registry = {
        "simple": SimpleFormatter,
        "detailed": DetailedFormatter,
        "json": JSONFormatter,
    }

    @classmethod
    def create(cls, name: str, **kwargs) -> logging.Formatter:
        """
        Raises:
            ValueError: 未注册的格式名
        """
        try:
            formatter_class = cls._registry[name]
        except KeyError:
            raise ValueError(f"未知的日志格式: {name}") from None
        return formatter_class(**kwargs)

    @classmethod
    def register(cls, name: str, formatter_class: type) -> None:
        cls._registry[name] = formatter_class


__all__ = [
    "EXECUTION_FIELDS",
    "execution_fields",
    "step_label",
    "SimpleFormatter",
    "DetailedFormatter",
    "JSONFormatter",
    "FormatterFactory",
]
