"""
流程引擎核心模块

按顺序执行流程中的步骤，首个失败即停止；全部通过时关闭会话。
"""

import inspect
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from flowpilot.backend.base import BrowserBackend
from flowpilot.core.context import (
    DEFAULT_COMMAND_TIMEOUT_MS,
    DEFAULT_SESSION_PREFIX,
    ExecuteOptions,
    SessionSpec,
)
from flowpilot.core.result import Error, Result
from flowpilot.flows.commands import Flow
from flowpilot.flows.context import (
    DEFAULT_AUTO_WAIT_INTERVAL_MS,
    DEFAULT_AUTO_WAIT_TIMEOUT_MS,
    ExecutionContext,
)
from flowpilot.flows.executor import StepExecutor
from flowpilot.flows.resolver import Clock, monotonic_ms
from flowpilot.flows.results import FlowResult, StepResult, StepStatus
from flowpilot.logger.execution import ExecutionLogger


logger = logging.getLogger(__name__)


class StepProgressStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"


@dataclass(frozen=True)
class StepProgress:
    """
    步骤进度事件

    Attributes:
        step_index: 步骤序号（从 0 开始）
        step_total: 步骤总数
        status: started / completed
        step_result: completed 事件携带的步骤结果
    """
    step_index: int
    step_total: int
    status: StepProgressStatus
    step_result: Optional[StepResult] = None


StepProgressCallback = Callable[[StepProgress], Union[None, Awaitable[None]]]


@dataclass
class FlowExecutionOptions:
    """
    流程执行选项

    Attributes:
        session: 会话指定（固定名称 / 前缀 / 自动生成）
        session_prefix: 自动生成会话名时使用的前缀
        headed: 是否有头模式
        env: 运行级环境变量（与流程级合并，运行级优先）
        command_timeout_ms: 单次后端调用超时
        auto_wait_timeout_ms: 自动等待超时
        auto_wait_interval_ms: 自动等待轮询间隔
        cwd: 后端进程工作目录
        screenshot: 失败时是否截图
        screenshot_dir: 失败截图目录
        execution_log_dir: 执行日志保存目录，为空时不保存
        on_step_progress: 步骤进度回调（同步或异步）
    """
    session: SessionSpec = field(default_factory=SessionSpec.default)
    session_prefix: str = DEFAULT_SESSION_PREFIX
    headed: bool = False
    env: Dict[str, str] = field(default_factory=dict)
    command_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS
    auto_wait_timeout_ms: int = DEFAULT_AUTO_WAIT_TIMEOUT_MS
    auto_wait_interval_ms: int = DEFAULT_AUTO_WAIT_INTERVAL_MS
    cwd: Optional[str] = None
    screenshot: bool = True
    screenshot_dir: Optional[str] = None
    execution_log_dir: Optional[str] = None
    on_step_progress: Optional[StepProgressCallback] = None


async def emit(callback: Optional[Callable[[Any], Any]], event: Any) -> None:
    """调用进度回调，兼容同步和异步回调"""
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result


class FlowEngine:
    """
    流程引擎

    Attributes:
        backend: 浏览器后端
        step_executor: 步骤执行器
    """

    def __init__(
        self,
        backend: BrowserBackend,
        step_executor: StepExecutor = None,
        clock: Clock = None,
    ):
        self.backend = backend
        self._clock = clock or monotonic_ms
        self.step_executor = step_executor or StepExecutor(backend, clock=self._clock)

    def build_context(self, flow: Flow, options: FlowExecutionOptions) -> ExecutionContext:
        """
        构建执行上下文

        解析会话名，并合并环境变量（运行级覆盖流程级）。
        """
        session_name = options.session.resolve(options.session_prefix)
        return ExecutionContext(
            session_name=session_name,
            execute_options=ExecuteOptions(
                session_name=session_name,
                headed=options.headed,
                timeout_ms=options.command_timeout_ms,
                cwd=options.cwd,
            ),
            env={**flow.env, **options.env},
            auto_wait_timeout_ms=options.auto_wait_timeout_ms,
            auto_wait_interval_ms=options.auto_wait_interval_ms,
            screenshot_dir=options.screenshot_dir,
        )

    async def execute_flow(
        self,
        flow: Flow,
        options: FlowExecutionOptions = None,
    ) -> Result[FlowResult]:
        """
        执行流程

        步骤失败以 FlowResult(status=failed) 正常返回；
        只有引擎自身的异常和会话关闭失败通过 Result 的错误通道返回。

        Args:
            flow: 流程定义
            options: 执行选项

        Returns:
            Result[FlowResult]
        """
        options = options or FlowExecutionOptions()
        try:
            ctx = self.build_context(flow, options)
        except Exception as e:
            logger.exception("流程 '%s' 上下文构建失败", flow.name)
            return Result.fail(Error.infrastructure(
                f"流程上下文构建失败: {e}", "execute_flow", repr(e),
            ))

        journal = ExecutionLogger(flow.name, session_name=ctx.session_name)
        journal.start()
        try:
            result = await self._run_steps(flow, ctx, options, journal)
        except Exception as e:
            logger.exception("流程 '%s' 执行器内部错误", flow.name)
            journal.finish("error", f"流程执行器内部错误: {e}")
            result = Result.fail(Error.infrastructure(
                f"流程执行器内部错误: {e}", "execute_flow", repr(e),
            ))

        self._save_journal(journal, options.execution_log_dir)
        return result

    async def _run_steps(
        self,
        flow: Flow,
        ctx: ExecutionContext,
        options: FlowExecutionOptions,
        journal: ExecutionLogger,
    ) -> Result[FlowResult]:
        start = self._clock()
        total = len(flow.steps)
        steps: List[StepResult] = []

        logger.info("开始执行流程 '%s' (会话 %s, %d 个步骤)", flow.name, ctx.session_name, total)

        for index, command in enumerate(flow.steps):
            await emit(options.on_step_progress, StepProgress(
                step_index=index,
                step_total=total,
                status=StepProgressStatus.STARTED,
            ))
            journal.step_start(index, command.command)

            step = await self.step_executor.execute_step(command, index, ctx, options.screenshot)
            steps.append(step)

            passed = step.status == StepStatus.PASSED
            journal.step_end(
                index,
                success=passed,
                duration_ms=step.duration_ms,
                result={"stdout": step.stdout} if passed and step.stdout else None,
                error=None if passed else step.error.to_dict(),
            )
            await emit(options.on_step_progress, StepProgress(
                step_index=index,
                step_total=total,
                status=StepProgressStatus.COMPLETED,
                step_result=step,
            ))

            if not passed:
                break

        duration_ms = max(0, int(self._clock() - start))

        if steps and steps[-1].status == StepStatus.FAILED:
            failed = FlowResult.failed(flow.name, ctx.session_name, duration_ms, steps)
            logger.info(
                "流程 '%s' 失败于步骤 %d: %s",
                flow.name, failed.error.step_index + 1, failed.error.message,
            )
            journal.finish("failed")
            return Result.ok(failed)

        closed = await self.backend.close(ctx.session_name)
        if not closed.success:
            message = f"关闭会话 {ctx.session_name} 失败: {closed.error.message}"
            logger.error(message)
            journal.finish("error", message)
            return Result.fail(Error.infrastructure(message, "close", closed.error.message))

        logger.info("流程 '%s' 通过 (%dms)", flow.name, duration_ms)
        journal.finish("passed")
        return Result.ok(FlowResult.passed(flow.name, ctx.session_name, duration_ms, steps))

    def _save_journal(self, journal: ExecutionLogger, directory: Optional[str]) -> None:
        if not directory:
            return
        path = os.path.join(directory, journal.default_filename())
        try:
            journal.save_to_file(path)
        except OSError as e:
            logger.warning("执行日志保存失败 %s: %s", path, e)


__all__ = [
    "StepProgressStatus",
    "StepProgress",
    "StepProgressCallback",
    "FlowExecutionOptions",
    "FlowEngine",
    "emit",
]
