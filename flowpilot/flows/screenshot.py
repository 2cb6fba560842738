"""
失败截图

步骤失败时在流程会话中截图，结果为 disabled / captured / failed 三者之一，
截图本身的失败不会影响步骤结果。
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flowpilot.backend.base import BrowserBackend
from flowpilot.flows.context import ExecutionContext


logger = logging.getLogger(__name__)


class ScreenshotStatus(str, Enum):
    DISABLED = "disabled"
    CAPTURED = "captured"
    FAILED = "failed"


@dataclass(frozen=True)
class ScreenshotResult:
    """失败截图结果"""
    status: ScreenshotStatus
    path: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def disabled(cls) -> 'ScreenshotResult':
        return cls(status=ScreenshotStatus.DISABLED)

    @classmethod
    def captured(cls, path: str) -> 'ScreenshotResult':
        return cls(status=ScreenshotStatus.CAPTURED, path=path)

    @classmethod
    def failed(cls, reason: str) -> 'ScreenshotResult':
        return cls(status=ScreenshotStatus.FAILED, reason=reason)

    def to_dict(self) -> dict:
        result = {"status": self.status.value}
        if self.path is not None:
            result["path"] = self.path
        if self.reason is not None:
            result["reason"] = self.reason
        return result


def error_screenshot_path(directory: Optional[str] = None, session_name: Optional[str] = None) -> str:
    """
    生成失败截图路径: <dir>/flow-error-<会话名>-<毫秒时间戳>.png

    每个流程使用独立会话，并行流程在同一毫秒失败时文件名也不会重复。
    """
    directory = directory or tempfile.gettempdir()
    stem = "flow-error"
    if session_name:
        stem = f"{stem}-{session_name.replace('/', '_').replace(os.sep, '_')}"
    return os.path.join(directory, f"{stem}-{int(time.time() * 1000)}.png")


async def capture_error_screenshot(
    backend: BrowserBackend,
    ctx: ExecutionContext,
    enabled: bool = True,
) -> ScreenshotResult:
    """
    步骤失败时截图

    Args:
        backend: 浏览器后端
        ctx: 执行上下文（截图在该上下文的会话中进行）
        enabled: 是否启用失败截图

    Returns:
        ScreenshotResult
    """
    if not enabled:
        return ScreenshotResult.disabled()

    path = error_screenshot_path(ctx.screenshot_dir, ctx.session_name)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
    except OSError as e:
        logger.warning("无法创建截图目录: %s", e)
        return ScreenshotResult.failed(f"无法创建截图目录: {e}")

    result = await backend.invoke("screenshot", [path], ctx.execute_options)
    if not result.success:
        logger.warning("失败截图未能保存: %s", result.error.message)
        return ScreenshotResult.failed(result.error.message)

    logger.info("失败截图已保存: %s", path)
    return ScreenshotResult.captured(path)


__all__ = [
    "ScreenshotStatus",
    "ScreenshotResult",
    "error_screenshot_path",
    "capture_error_screenshot",
]
