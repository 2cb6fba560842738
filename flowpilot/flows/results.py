"""
步骤与流程执行结果

结果均为不可变值。通过的步骤只携带输出，失败的步骤只携带错误，
二者由不同的类型表达。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from flowpilot.flows.commands import BaseCommand
from flowpilot.flows.screenshot import ScreenshotResult


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class FlowStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepError:
    """
    步骤错误

    Attributes:
        message: 展示用错误信息（不为空）
        kind: 错误码
        screenshot: 失败截图结果
        details: 错误详情
    """
    message: str
    kind: str
    screenshot: ScreenshotResult = field(default_factory=ScreenshotResult.disabled)
    details: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "kind": self.kind,
            "screenshot": self.screenshot.to_dict(),
            "details": self.details,
        }


@dataclass(frozen=True)
class PassedStepResult:
    index: int
    command: BaseCommand
    duration_ms: int
    stdout: Optional[str] = None

    @property
    def status(self) -> StepStatus:
        return StepStatus.PASSED

    def to_dict(self) -> dict:
        result = {
            "index": self.index,
            "command": self.command.model_dump(mode="json", exclude_none=True),
            "status": self.status.value,
            "duration_ms": self.duration_ms,
        }
        if self.stdout is not None:
            result["stdout"] = self.stdout
        return result


@dataclass(frozen=True)
class FailedStepResult:
    index: int
    command: BaseCommand
    duration_ms: int
    error: StepError

    @property
    def status(self) -> StepStatus:
        return StepStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "command": self.command.model_dump(mode="json", exclude_none=True),
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "error": self.error.to_dict(),
        }


StepResult = Union[PassedStepResult, FailedStepResult]


@dataclass(frozen=True)
class FlowError:
    """流程失败信息，指向首个失败步骤"""
    step_index: int
    message: str
    screenshot: ScreenshotResult = field(default_factory=ScreenshotResult.disabled)

    def to_dict(self) -> dict:
        return {
            "step_index": self.step_index,
            "message": self.message,
            "screenshot": self.screenshot.to_dict(),
        }


@dataclass(frozen=True)
class FlowResult:
    """
    流程执行结果

    失败时 error.step_index 必须指向 steps 中最后一个（也是唯一一个）失败步骤。
    """
    flow: str
    session_name: str
    status: FlowStatus
    duration_ms: int
    steps: Tuple[StepResult, ...] = ()
    error: Optional[FlowError] = None

    def __post_init__(self):
        if self.status == FlowStatus.FAILED:
            if self.error is None or not self.steps:
                raise ValueError("失败的流程必须包含失败步骤和错误信息")
            last = self.steps[-1]
            if last.status != StepStatus.FAILED or last.index != self.error.step_index:
                raise ValueError("流程错误必须指向最后一个失败步骤")
        elif self.error is not None:
            raise ValueError("通过的流程不能携带错误信息")

    @classmethod
    def passed(cls, flow: str, session_name: str, duration_ms: int, steps) -> 'FlowResult':
        return cls(
            flow=flow,
            session_name=session_name,
            status=FlowStatus.PASSED,
            duration_ms=duration_ms,
            steps=tuple(steps),
        )

    @classmethod
    def failed(cls, flow: str, session_name: str, duration_ms: int, steps) -> 'FlowResult':
        steps = tuple(steps)
        failed_step = steps[-1]
        return cls(
            flow=flow,
            session_name=session_name,
            status=FlowStatus.FAILED,
            duration_ms=duration_ms,
            steps=steps,
            error=FlowError(
                step_index=failed_step.index,
                message=failed_step.error.message,
                screenshot=failed_step.error.screenshot,
            ),
        )

    def to_dict(self) -> dict:
        return {
            "flow": self.flow,
            "session_name": self.session_name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "steps": [step.to_dict() for step in self.steps],
            "error": self.error.to_dict() if self.error else None,
        }


__all__ = [
    "StepStatus",
    "FlowStatus",
    "StepError",
    "PassedStepResult",
    "FailedStepResult",
    "StepResult",
    "FlowError",
    "FlowResult",
]
