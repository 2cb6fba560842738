"""
步骤执行器

执行单个命令：按需自动等待、分派到处理器、计时，失败时截图。
步骤执行器从不抛出异常，所有失败都体现在返回的 StepResult 中。
"""

import logging

from flowpilot.backend.base import BrowserBackend
from flowpilot.core.result import Error, ErrorCode
from flowpilot.flows.commands import BaseCommand, requires_auto_wait
from flowpilot.flows.context import ExecutionContext
from flowpilot.flows.handlers import HandlerRegistry
from flowpilot.flows.resolver import Clock, SelectorResolver, monotonic_ms
from flowpilot.flows.results import (
    FailedStepResult,
    PassedStepResult,
    StepError,
    StepResult,
)
from flowpilot.flows.screenshot import ScreenshotResult, capture_error_screenshot


logger = logging.getLogger(__name__)

AUTO_WAIT_FAILURE_PREFIX = "自动等待失败: "


def display_message(error: Error, command: str) -> str:
    """
    将错误归一为展示用消息

    优先使用 message，其次 raw_error、stderr，均为空时给出通用消息，
    保证不会返回空字符串。
    """
    candidates = (error.message, error.detail("raw_error"), error.detail("stderr"))
    for candidate in candidates:
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    if error.is_code(ErrorCode.TIMEOUT):
        return f"{command} 超时 (>{error.detail('timeout_ms')}ms)"
    return f"命令执行失败: {command}"


class StepExecutor:
    """
    步骤执行器

    Attributes:
        backend: 浏览器后端
        resolver: 选择器解析器
    """

    def __init__(
        self,
        backend: BrowserBackend,
        resolver: SelectorResolver = None,
        clock: Clock = None,
    ):
        self.backend = backend
        self.resolver = resolver or SelectorResolver(backend)
        self._clock = clock or monotonic_ms

    async def execute_step(
        self,
        command: BaseCommand,
        index: int,
        ctx: ExecutionContext,
        capture_screenshot: bool = True,
    ) -> StepResult:
        """
        执行一个步骤

        Args:
            command: 命令
            index: 步骤序号（从 0 开始）
            ctx: 执行上下文
            capture_screenshot: 失败时是否截图

        Returns:
            StepResult: PassedStepResult 或 FailedStepResult
        """
        start = self._clock()
        try:
            return await self._execute(command, index, ctx, capture_screenshot, start)
        except Exception as e:  # 步骤级异常全部转为失败结果
            logger.exception("步骤 %d (%s) 执行异常", index + 1, command.command)
            duration_ms = self._elapsed(start)
            try:
                screenshot = await capture_error_screenshot(self.backend, ctx, capture_screenshot)
            except Exception as shot_error:
                logger.warning("步骤异常后截图失败: %s", shot_error)
                screenshot = ScreenshotResult.failed(str(shot_error) or type(shot_error).__name__)
            return FailedStepResult(
                index=index,
                command=command,
                duration_ms=duration_ms,
                error=StepError(
                    message=f"步骤执行异常: {e}" if str(e) else f"步骤执行异常: {type(e).__name__}",
                    kind=ErrorCode.VALIDATION_ERROR.value,
                    screenshot=screenshot,
                ),
            )

    async def _execute(
        self,
        command: BaseCommand,
        index: int,
        ctx: ExecutionContext,
        capture_screenshot: bool,
        start: float,
    ) -> StepResult:
        step_ctx = ctx

        if requires_auto_wait(command):
            resolved = await self.resolver.resolve(command.selector_spec, ctx)
            if not resolved.success:
                duration_ms = self._elapsed(start)
                message = AUTO_WAIT_FAILURE_PREFIX + display_message(resolved.error, command.command)
                logger.info("步骤 %d (%s) %s", index + 1, command.command, message)
                return await self._failed(command, index, ctx, resolved.error, message, capture_screenshot, duration_ms)
            step_ctx = ctx.with_resolved_target(resolved.data)

        handler = HandlerRegistry.get(command.command)
        result = await handler(self.backend, command, step_ctx)
        duration_ms = self._elapsed(start)

        if result.success:
            logger.debug("步骤 %d (%s) 通过", index + 1, command.command)
            return PassedStepResult(
                index=index,
                command=command,
                duration_ms=duration_ms,
                stdout=result.data or None,
            )

        message = display_message(result.error, command.command)
        logger.info("步骤 %d (%s) 失败: %s", index + 1, command.command, message)
        return await self._failed(command, index, ctx, result.error, message, capture_screenshot, duration_ms)

    async def _failed(
        self,
        command: BaseCommand,
        index: int,
        ctx: ExecutionContext,
        error: Error,
        message: str,
        capture_screenshot: bool,
        duration_ms: int,
    ) -> FailedStepResult:
        """耗时在截图之前测得，截图时间不计入步骤耗时"""
        screenshot = await capture_error_screenshot(self.backend, ctx, capture_screenshot)
        return FailedStepResult(
            index=index,
            command=command,
            duration_ms=duration_ms,
            error=StepError(
                message=message,
                kind=error.code,
                screenshot=screenshot,
                details=error.details,
            ),
        )

    def _elapsed(self, start: float) -> int:
        return max(0, int(self._clock() - start))


__all__ = [
    "AUTO_WAIT_FAILURE_PREFIX",
    "display_message",
    "StepExecutor",
]
