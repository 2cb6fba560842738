"""
多流程运行器

以有界并发执行多个相互独立的流程并汇总结果。
bail 在这里生效：某个流程失败后不再启动新的流程。
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from flowpilot.backend.agent_browser import AgentBrowserBackend
from flowpilot.backend.base import BrowserBackend
from flowpilot.config import AppConfig, get_config
from flowpilot.core.context import SessionSpec
from flowpilot.core.result import Error, Result
from flowpilot.flows.commands import Flow
from flowpilot.flows.engine import FlowEngine, FlowExecutionOptions, StepProgressCallback, emit
from flowpilot.flows.parsers import FlowParser
from flowpilot.flows.resolver import Clock, monotonic_ms
from flowpilot.flows.results import FlowStatus, StepResult
from flowpilot.flows.screenshot import ScreenshotStatus
from flowpilot.logger.config import configure_logging


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowStartEvent:
    flow_name: str
    step_total: int
    type: str = "flow:start"


@dataclass(frozen=True)
class FlowCompleteEvent:
    flow_name: str
    status: FlowStatus
    duration_ms: int
    type: str = "flow:complete"


FlowProgressCallback = Callable[[Any], Any]


@dataclass(frozen=True)
class FlowRunError:
    """
    流程失败摘要

    step_index 为 None 表示流程因执行器内部错误失败，与具体步骤无关。
    """
    step_index: Optional[int]
    message: str
    screenshot: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "step_index": self.step_index,
            "message": self.message,
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True)
class FlowRunSummary:
    flow_name: str
    status: FlowStatus
    duration_ms: int
    steps: Tuple[StepResult, ...] = ()
    error: Optional[FlowRunError] = None
    session_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "flow_name": self.flow_name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "session_name": self.session_name,
            "steps": [step.to_dict() for step in self.steps],
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class RunSummary:
    """
    运行汇总

    passed + failed == total；bail 提前停止时 total 小于输入的流程数，
    未运行的流程列在 skipped 中。
    """
    passed: int
    failed: int
    total: int
    duration_ms: int
    flows: Tuple[FlowRunSummary, ...] = ()
    skipped: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "total": self.total,
            "duration_ms": self.duration_ms,
            "flows": [flow.to_dict() for flow in self.flows],
            "skipped": list(self.skipped),
        }


@dataclass
class RunOptions:
    """
    运行选项

    默认值来自 RunnerSettings，见 RunOptions.from_config。
    """
    session: SessionSpec = field(default_factory=SessionSpec.default)
    session_prefix: str = "flowpilot"
    headed: bool = False
    env: Dict[str, str] = field(default_factory=dict)
    command_timeout_ms: int = 30000
    auto_wait_timeout_ms: int = 30000
    auto_wait_interval_ms: int = 100
    cwd: Optional[str] = None
    screenshot: bool = True
    screenshot_dir: Optional[str] = None
    execution_log_dir: Optional[str] = None
    bail: bool = True
    parallel: int = 1
    on_step_progress: Optional[StepProgressCallback] = None
    on_flow_progress: Optional[FlowProgressCallback] = None

    @classmethod
    def from_config(cls, config: AppConfig = None, **overrides) -> 'RunOptions':
        """从配置创建运行选项，overrides 覆盖对应字段"""
        config = config or get_config()
        settings = config.runner
        options = cls(
            session_prefix=settings.session_prefix,
            headed=settings.headed,
            command_timeout_ms=settings.command_timeout_ms,
            auto_wait_timeout_ms=settings.auto_wait_timeout_ms,
            auto_wait_interval_ms=settings.auto_wait_interval_ms,
            screenshot=settings.screenshot,
            screenshot_dir=settings.screenshot_dir,
            execution_log_dir=config.log.execution_log_dir,
            bail=settings.bail,
            parallel=settings.parallel,
        )
        return replace(options, **overrides)

    def flow_options(self) -> FlowExecutionOptions:
        return FlowExecutionOptions(
            session=self.session,
            session_prefix=self.session_prefix,
            headed=self.headed,
            env=dict(self.env),
            command_timeout_ms=self.command_timeout_ms,
            auto_wait_timeout_ms=self.auto_wait_timeout_ms,
            auto_wait_interval_ms=self.auto_wait_interval_ms,
            cwd=self.cwd,
            screenshot=self.screenshot,
            screenshot_dir=self.screenshot_dir,
            execution_log_dir=self.execution_log_dir,
            on_step_progress=self.on_step_progress,
        )


class FlowRunner:
    """
    多流程运行器

    Attributes:
        backend: 浏览器后端
        engine: 流程引擎
        parser: 流程解析器
    """

    def __init__(
        self,
        backend: BrowserBackend = None,
        engine: FlowEngine = None,
        parser: FlowParser = None,
        clock: Clock = None,
        config: AppConfig = None,
    ):
        self.config = config or get_config()
        self.backend = backend or AgentBrowserBackend(self.config.runner.backend_command)
        self._clock = clock or monotonic_ms
        self.engine = engine or FlowEngine(self.backend, clock=self._clock)
        self.parser = parser or FlowParser()

    def default_options(self, **overrides) -> RunOptions:
        return RunOptions.from_config(self.config, **overrides)

    async def run_files(self, paths: Iterable[str], options: RunOptions = None) -> Result[RunSummary]:
        """
        加载并运行流程文件

        先检查后端是否可用，再加载全部文件，任一文件加载失败则整体失败。
        """
        options = options or self.default_options()
        paths = list(paths)
        if not paths:
            return Result.fail(Error.no_flows_found())

        check = await self.backend.check()
        if not check.success:
            logger.error("后端不可用: %s", check.error.message)
            return Result.fail(Error.environment(check.error.message))

        flows: List[Flow] = []
        for path in paths:
            if options.cwd and not os.path.isabs(path):
                path = os.path.join(options.cwd, path)
            loaded = self.parser.load_file(path, options.env)
            if not loaded.success:
                logger.error("流程加载失败 %s: %s", path, loaded.error.message)
                return loaded  # type: ignore
            flows.append(loaded.data)

        return await self.run(flows, options)

    async def run(self, flows: Iterable[Flow], options: RunOptions = None) -> Result[RunSummary]:
        """
        运行已解析的流程

        最多 parallel 个流程并发执行，结果按输入顺序排列。
        """
        options = options or self.default_options()
        flows = list(flows)
        if not flows:
            return Result.fail(Error.no_flows_found())

        parallel = max(1, options.parallel)
        if options.session.is_pinned and len(flows) > 1 and parallel > 1:
            return Result.fail(Error.validation(
                "固定会话名不能用于并发执行多个流程",
                {"session": options.session.value, "flows": len(flows), "parallel": parallel},
            ))

        start = self._clock()
        summaries: List[Optional[FlowRunSummary]] = [None] * len(flows)
        next_index = 0
        stopped = False

        async def worker() -> None:
            nonlocal next_index, stopped
            while not stopped and next_index < len(flows):
                index = next_index
                next_index += 1
                summary = await self._run_flow(flows[index], options)
                summaries[index] = summary
                if summary.status == FlowStatus.FAILED and options.bail and not stopped:
                    logger.info("流程 '%s' 失败，bail 生效，停止启动后续流程", summary.flow_name)
                    stopped = True

        tasks = [asyncio.ensure_future(worker()) for _ in range(min(parallel, len(flows)))]
        try:
            await asyncio.gather(*tasks)
        except Exception as e:
            logger.exception("运行器内部错误，取消其余流程")
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            return Result.fail(Error.infrastructure(f"运行器内部错误: {e}", "run_flows", repr(e)))

        launched = tuple(summary for summary in summaries if summary is not None)
        skipped = tuple(flow.name for flow, summary in zip(flows, summaries) if summary is None)
        passed = sum(1 for summary in launched if summary.status == FlowStatus.PASSED)

        return Result.ok(RunSummary(
            passed=passed,
            failed=len(launched) - passed,
            total=len(launched),
            duration_ms=max(0, int(self._clock() - start)),
            flows=launched,
            skipped=skipped,
        ))

    async def _notify(self, callback, event) -> None:
        """流程进度回调出错只记录日志，不影响流程执行和其他工作者"""
        try:
            await emit(callback, event)
        except Exception:
            logger.exception("流程进度回调出错 (%s)", event.type)

    async def _run_flow(self, flow: Flow, options: RunOptions) -> FlowRunSummary:
        start = self._clock()
        await self._notify(options.on_flow_progress, FlowStartEvent(flow.name, len(flow.steps)))

        result = await self.engine.execute_flow(flow, options.flow_options())
        duration_ms = max(0, int(self._clock() - start))

        if result.success:
            flow_result = result.data
            error = None
            if flow_result.error is not None:
                screenshot = flow_result.error.screenshot
                error = FlowRunError(
                    step_index=flow_result.error.step_index,
                    message=flow_result.error.message,
                    screenshot=screenshot.path if screenshot.status == ScreenshotStatus.CAPTURED else None,
                )
            summary = FlowRunSummary(
                flow_name=flow.name,
                status=flow_result.status,
                duration_ms=duration_ms,
                steps=flow_result.steps,
                error=error,
                session_name=flow_result.session_name,
            )
        else:
            logger.error("流程 '%s' 执行错误: %s", flow.name, result.error.message)
            summary = FlowRunSummary(
                flow_name=flow.name,
                status=FlowStatus.FAILED,
                duration_ms=duration_ms,
                error=FlowRunError(step_index=None, message=f"执行错误: {result.error.message}"),
            )

        await self._notify(options.on_flow_progress, FlowCompleteEvent(flow.name, summary.status, duration_ms))
        return summary


async def run_flows(
    paths: Iterable[str],
    options: RunOptions = None,
    backend: BrowserBackend = None,
    setup_logging: bool = True,
) -> Result[RunSummary]:
    """
    便捷函数：加载并运行流程文件

    setup_logging 为 True 时按全局配置安装 flowpilot 日志处理器。
    """
    config = get_config()
    if setup_logging:
        configure_logging(config.log.to_log_config())
    return await FlowRunner(backend=backend, config=config).run_files(paths, options)


__all__ = [
    "FlowStartEvent",
    "FlowCompleteEvent",
    "FlowProgressCallback",
    "FlowRunError",
    "FlowRunSummary",
    "RunSummary",
    "RunOptions",
    "FlowRunner",
    "run_flows",
]
