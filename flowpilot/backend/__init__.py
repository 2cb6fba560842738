"""
浏览器后端模块

提供后端抽象、agent-browser 命令行实现和输出解析。
"""

from .base import BrowserBackend
from .agent_browser import AgentBrowserBackend, DEFAULT_BACKEND_COMMAND, build_args
from .output import (
    BackendOutput,
    SnapshotRef,
    parse_json_output,
    parse_snapshot_refs,
    extract_data,
)

__all__ = [
    "BrowserBackend",
    "AgentBrowserBackend",
    "DEFAULT_BACKEND_COMMAND",
    "build_args",
    "BackendOutput",
    "SnapshotRef",
    "parse_json_output",
    "parse_snapshot_refs",
    "extract_data",
]
