"""
断言命令

可见性、可用状态和勾选状态断言。断言不成立时返回 assertion_failed。
"""

import json

from flowpilot.backend.output import CheckedData, EnabledData, VisibilityData, extract_data
from flowpilot.core.result import Error, Result
from flowpilot.flows.commands import (
    AssertCheckedCommand,
    AssertEnabledCommand,
    AssertNotVisibleCommand,
    AssertVisibleCommand,
    SelectorKind,
)
from flowpilot.flows.handlers.registry import HandlerRegistry


# assertNotVisible 检查文本是否存在时使用的短超时
NOT_VISIBLE_TEXT_TIMEOUT_MS = 1000


def _is_text(command, ctx) -> bool:
    return ctx.resolved_target is None and command.selector.kind == SelectorKind.TEXT


async def _query(backend, predicate: str, selector: str, model, ctx) -> Result:
    """执行 is <predicate> SEL 并解析结果"""
    output = await backend.invoke("is", [predicate, selector], ctx.execute_options)
    return output.flat_map(lambda raw: extract_data(raw, model, f"is {predicate}"))


@HandlerRegistry.register("assertVisible")
async def handle_assert_visible(backend, command: AssertVisibleCommand, ctx):
    spec = command.selector
    options = ctx.execute_options

    if _is_text(command, ctx):
        waited = await backend.invoke("wait", ["--text", spec.text], options)
        if not waited.success:
            return Result.fail(Error.assertion_failed(
                command="assertVisible",
                selector=spec.text,
                message=f'文本 "{spec.text}" 不可见',
                expected=True,
                actual=False,
            ))
        return Result.ok(json.dumps({"visible": True}))

    selector = ctx.cli_selector(spec)
    waited = await backend.invoke("wait", [selector], options)
    if not waited.success:
        return Result.fail(Error.timeout("wait", [spec.value], ctx.auto_wait_timeout_ms))

    visibility = await _query(backend, "visible", selector, VisibilityData, ctx)
    if not visibility.success:
        return visibility
    if not visibility.data.visible:
        return Result.fail(Error.assertion_failed(
            command="assertVisible",
            selector=spec.value,
            message=f'元素 "{spec.value}" 不可见',
            expected=True,
            actual=False,
        ))
    return Result.ok(visibility.data.model_dump_json())


@HandlerRegistry.register("assertNotVisible")
async def handle_assert_not_visible(backend, command: AssertNotVisibleCommand, ctx):
    spec = command.selector
    options = ctx.execute_options

    # 等页面稳定后再判断，避免元素尚未渲染导致误判
    idle = await backend.invoke("wait", ["--load", "networkidle"], options)
    if not idle.success:
        return idle

    if _is_text(command, ctx):
        waited = await backend.invoke(
            "wait",
            ["--text", spec.text],
            options.with_timeout(NOT_VISIBLE_TEXT_TIMEOUT_MS),
        )
        if waited.success:
            return Result.fail(Error.assertion_failed(
                command="assertNotVisible",
                selector=spec.text,
                message=f'文本 "{spec.text}" 仍然可见',
                expected=False,
                actual=True,
            ))
        return Result.ok(json.dumps({"visible": False}))

    selector = ctx.cli_selector(spec)
    visibility = await _query(backend, "visible", selector, VisibilityData, ctx)
    if not visibility.success:
        return visibility
    if visibility.data.visible:
        return Result.fail(Error.assertion_failed(
            command="assertNotVisible",
            selector=spec.value,
            message=f'元素 "{spec.value}" 仍然可见',
            expected=False,
            actual=True,
        ))
    return Result.ok(visibility.data.model_dump_json())


@HandlerRegistry.register("assertEnabled")
async def handle_assert_enabled(backend, command: AssertEnabledCommand, ctx):
    spec = command.selector
    state = await _query(backend, "enabled", ctx.cli_selector(spec), EnabledData, ctx)
    if not state.success:
        return state
    if not state.data.enabled:
        return Result.fail(Error.assertion_failed(
            command="assertEnabled",
            selector=spec.value,
            message=f'元素 "{spec.value}" 不可用',
            expected=True,
            actual=False,
        ))
    return Result.ok(state.data.model_dump_json())


@HandlerRegistry.register("assertChecked")
async def handle_assert_checked(backend, command: AssertCheckedCommand, ctx):
    spec = command.selector
    state = await _query(backend, "checked", ctx.cli_selector(spec), CheckedData, ctx)
    if not state.success:
        return state
    if state.data.checked != command.checked:
        expected = "已勾选" if command.checked else "未勾选"
        return Result.fail(Error.assertion_failed(
            command="assertChecked",
            selector=spec.value,
            message=f'元素 "{spec.value}" 应为{expected}',
            expected=command.checked,
            actual=state.data.checked,
        ))
    return Result.ok(state.data.model_dump_json())
