"""
测试公共设施

FakeBackend: 按脚本返回结果的内存后端，记录每次调用
FakeClock: 模拟时钟，sleep 只推进时间不真正等待
"""

import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

from flowpilot.backend.base import BrowserBackend
from flowpilot.backend.output import SnapshotRef
from flowpilot.core.context import ExecuteOptions
from flowpilot.core.result import Error, Result
from flowpilot.flows.context import ExecutionContext


def ok_json(data: Any = None) -> Result:
    """后端成功输出"""
    return Result.ok(json.dumps({"success": True, "data": data if data is not None else {}, "error": None}))


def refs(**elements) -> Dict[str, Dict[str, str]]:
    """refs(e1=("Login", "button")) -> {"e1": {"name": "Login", "role": "button"}}"""
    return {ref_id: {"name": name, "role": role} for ref_id, (name, role) in elements.items()}


def failed(command: str = "click", message: str = "element not found") -> Result:
    return Result.fail(Error.command_failed(command, [], exit_code=1, raw_error=message))


class FakeClock:
    """模拟时钟（毫秒）"""

    def __init__(self, start: float = 0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, ms: float) -> None:
        self.sleeps.append(ms)
        self.now += ms


ScriptedResult = Union[Result, Callable[[Sequence[str], ExecuteOptions], Result]]


class FakeBackend(BrowserBackend):
    """
    脚本化后端

    queue(action, *results) 为动作排队结果，按顺序消费；队列为空时返回默认成功输出。
    snapshots 中的每一项按顺序被 snapshot() 消费，最后一项会一直重复。
    """

    def __init__(self, snapshots: List[Union[dict, Result]] = None):
        self.calls: List[tuple] = []
        self.snapshots = list(snapshots or [{}])
        self.snapshot_calls = 0
        self.closed: List[str] = []
        self.close_result: Result = Result.ok()
        self.check_result: Result = Result.ok()
        self._queues: Dict[str, List[ScriptedResult]] = {}

    def queue(self, action: str, *results: ScriptedResult) -> None:
        self._queues.setdefault(action, []).extend(results)

    def actions(self) -> List[str]:
        return [call[0] for call in self.calls]

    def calls_for(self, action: str) -> List[List[str]]:
        return [list(call[1]) for call in self.calls if call[0] == action]

    async def invoke(self, action, args, options=None):
        self.calls.append((action, list(args), options))
        queue = self._queues.get(action)
        if queue:
            result = queue.pop(0)
            if callable(result):
                return result(args, options)
            return result
        return ok_json()

    async def snapshot(self, options=None):
        self.snapshot_calls += 1
        index = min(self.snapshot_calls - 1, len(self.snapshots) - 1)
        current = self.snapshots[index]
        if isinstance(current, Result):
            return current
        return Result.ok({ref_id: SnapshotRef(**ref) for ref_id, ref in current.items()})

    async def close(self, session_name):
        self.closed.append(session_name)
        return self.close_result

    async def check(self):
        return self.check_result


def make_context(
    session_name: str = "test-session",
    timeout_ms: int = 1000,
    interval_ms: int = 100,
    screenshot_dir: Optional[str] = None,
) -> ExecutionContext:
    return ExecutionContext(
        session_name=session_name,
        execute_options=ExecuteOptions(session_name=session_name),
        auto_wait_timeout_ms=timeout_ms,
        auto_wait_interval_ms=interval_ms,
        screenshot_dir=screenshot_dir,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
