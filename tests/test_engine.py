"""
测试流程引擎
"""

import asyncio
import json

from conftest import FakeBackend, FakeClock, failed, refs
from flowpilot.core.context import SessionSpec
from flowpilot.core.result import Error, ErrorCode, Result
from flowpilot.flows.commands import (
    ClickCommand,
    Flow,
    OpenCommand,
    PressCommand,
    SelectorSpec,
)
from flowpilot.flows.engine import FlowEngine, FlowExecutionOptions, StepProgressStatus
from flowpilot.flows.executor import StepExecutor
from flowpilot.flows.resolver import SelectorResolver
from flowpilot.flows.results import FlowStatus, StepStatus


def make_engine(backend, clock=None):
    clock = clock or FakeClock()
    resolver = SelectorResolver(backend, clock=clock, sleep=clock.sleep)
    return FlowEngine(backend, StepExecutor(backend, resolver=resolver, clock=clock), clock=clock)


def three_step_flow(env=None):
    return Flow(
        name="login.yaml",
        env=env or {},
        steps=[
            OpenCommand(url="https://example.com/login"),
            ClickCommand(selector=SelectorSpec.of_css("#submit")),
            PressCommand(key="Enter"),
        ],
    )


def options(**kwargs):
    kwargs.setdefault("session", SessionSpec.named("flow-test"))
    kwargs.setdefault("screenshot", False)
    kwargs.setdefault("auto_wait_timeout_ms", 500)
    return FlowExecutionOptions(**kwargs)


def test_flow_stops_at_first_failure():
    """第二步失败时，第三步不执行也不出现在结果中"""
    backend = FakeBackend()
    backend.queue("is", failed("is", "Element not found"))

    result = asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options()))

    assert result.success
    flow_result = result.data
    assert flow_result.status == FlowStatus.FAILED
    assert len(flow_result.steps) == 2
    assert flow_result.steps[-1].status == StepStatus.FAILED
    assert flow_result.error.step_index == 1
    assert flow_result.error.message == "自动等待失败: Element not found"
    assert "press" not in backend.actions()
    assert backend.closed == []


def test_failed_flow_keeps_session_open():
    backend = FakeBackend()
    backend.queue("open", failed("open"))

    result = asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options()))

    assert result.data.status == FlowStatus.FAILED
    assert len(result.data.steps) == 1
    assert backend.closed == []


def test_passed_flow_closes_session():
    backend = FakeBackend()
    backend.queue("is", lambda args, opts: Result.ok(json.dumps({"success": True, "data": {"visible": True}, "error": None})))

    result = asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options()))

    assert result.success
    assert result.data.status == FlowStatus.PASSED
    assert result.data.session_name == "flow-test"
    assert [step.index for step in result.data.steps] == [0, 1, 2]
    assert backend.closed == ["flow-test"]


def test_every_call_uses_flow_session():
    backend = FakeBackend()
    backend.queue("is", lambda args, opts: Result.ok('{"success": true, "data": {"visible": true}, "error": null}'))

    asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options(headed=True, command_timeout_ms=5000)))

    for _, _, execute_options in backend.calls:
        assert execute_options.session_name == "flow-test"
        assert execute_options.headed is True
        assert execute_options.timeout_ms == 5000


def test_close_failure_is_infrastructure_error():
    backend = FakeBackend()
    backend.queue("is", lambda args, opts: Result.ok('{"success": true, "data": {"visible": true}, "error": null}'))
    backend.close_result = Result.fail(Error.command_failed("close", [], 1, raw_error="session not found"))

    result = asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options()))

    assert result.is_error(ErrorCode.INFRASTRUCTURE_ERROR)
    assert "session not found" in result.error.message


def test_progress_callbacks_only_for_executed_steps():
    backend = FakeBackend()
    backend.queue("is", failed("is"))
    events = []

    asyncio.run(make_engine(backend).execute_flow(
        three_step_flow(),
        options(on_step_progress=events.append),
    ))

    assert [(e.step_index, e.status) for e in events] == [
        (0, StepProgressStatus.STARTED),
        (0, StepProgressStatus.COMPLETED),
        (1, StepProgressStatus.STARTED),
        (1, StepProgressStatus.COMPLETED),
    ]
    assert all(e.step_total == 3 for e in events)
    assert events[1].step_result.status == StepStatus.PASSED
    assert events[3].step_result.status == StepStatus.FAILED
    assert events[0].step_result is None


def test_async_progress_callback():
    backend = FakeBackend()
    backend.queue("is", lambda args, opts: Result.ok('{"success": true, "data": {"visible": true}, "error": null}'))
    seen = []

    async def on_progress(event):
        await asyncio.sleep(0)
        seen.append(event.status)

    asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options(on_step_progress=on_progress)))

    assert len(seen) == 6


def test_callback_error_is_infrastructure_error():
    backend = FakeBackend()

    def broken(event):
        raise ValueError("callback broke")

    result = asyncio.run(make_engine(backend).execute_flow(three_step_flow(), options(on_step_progress=broken)))

    assert result.is_error(ErrorCode.INFRASTRUCTURE_ERROR)
    assert "callback broke" in result.error.message


def test_run_env_overrides_flow_env():
    engine = make_engine(FakeBackend())
    flow = three_step_flow(env={"BASE_URL": "https://flow.test", "USER": "alice"})

    ctx = engine.build_context(flow, options(env={"BASE_URL": "https://run.test"}))

    assert ctx.env == {"BASE_URL": "https://run.test", "USER": "alice"}


def test_generated_session_names_use_prefix():
    engine = make_engine(FakeBackend())
    flow = three_step_flow()

    first = engine.build_context(flow, options(session=SessionSpec.prefixed("smoke")))
    second = engine.build_context(flow, options(session=SessionSpec.default(), session_prefix="fp"))

    assert first.session_name.startswith("smoke-")
    assert second.session_name.startswith("fp-")
    assert len(second.session_name.split("-")[-1]) == 4


def test_resolved_target_does_not_leak_between_steps():
    backend = FakeBackend([refs(e1=("Login", "button"))])
    flow = Flow(
        name="two-clicks",
        steps=[
            ClickCommand(selector=SelectorSpec.of_text("Login")),
            ClickCommand(selector=SelectorSpec.of_ref("@e1")),
        ],
    )

    result = asyncio.run(make_engine(backend).execute_flow(flow, options()))

    assert result.data.status == FlowStatus.PASSED
    assert backend.calls_for("click") == [["@e1"], ["@e1"]]


def test_execution_log_is_saved(tmp_path):
    backend = FakeBackend()
    backend.queue("open", failed("open", "DNS error"))

    asyncio.run(make_engine(backend).execute_flow(
        three_step_flow(),
        options(execution_log_dir=str(tmp_path)),
    ))

    files = list(tmp_path.glob("*.json"))
    assert len(files) == 1
    assert files[0].name.startswith("login.yaml-flow-test-")
    saved = json.loads(files[0].read_text(encoding="utf-8"))
    assert saved["flow_name"] == "login.yaml"
    assert saved["status"] == "failed"
    assert saved["error_count"] >= 1
