"""
测试选择器解析 / 自动等待
"""

import asyncio

from conftest import FakeBackend, make_context, ok_json, refs
from flowpilot.core.result import Error, ErrorCode, Result
from flowpilot.flows.commands import SelectorSpec
from flowpilot.flows.resolver import SelectorResolver, find_matching_refs
from flowpilot.backend.output import SnapshotRef


def resolve(backend, clock, selector, ctx=None, confirm=True):
    resolver = SelectorResolver(backend, clock=clock, sleep=clock.sleep)
    return asyncio.run(resolver.resolve(selector, ctx or make_context(), confirm=confirm))


def test_text_resolves_on_first_poll(clock):
    """单个匹配在第一次轮询即解析为引用"""
    backend = FakeBackend([refs(e1=("Login", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_text("Login"))

    assert result.success
    assert result.data.selector == "@e1"
    assert backend.snapshot_calls == 1
    assert clock.sleeps == []


def test_text_resolves_after_polling(clock):
    """元素在第三次轮询出现，耗时约两个轮询间隔"""
    backend = FakeBackend([{}, {}, refs(e1=("Login", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_text("Login"), make_context(timeout_ms=1000, interval_ms=100))

    assert result.success
    assert result.data.selector == "@e1"
    assert backend.snapshot_calls == 3
    assert clock.now == 200


def test_text_times_out(clock):
    """快照始终为空时超时"""
    backend = FakeBackend([{}])

    result = resolve(backend, clock, SelectorSpec.of_text("Login"), make_context(timeout_ms=1000, interval_ms=100))

    assert result.is_error(ErrorCode.TIMEOUT)
    assert result.error.detail("timeout_ms") == 1000
    assert result.error.detail("args") == ["Login"]
    assert clock.now >= 1000


def test_ambiguous_text_fails_immediately(clock):
    """多个匹配立即失败，不再轮询"""
    backend = FakeBackend([refs(
        e1=("View details", "link"),
        e2=("View details", "link"),
        e3=("View details", "link"),
    )])

    result = resolve(backend, clock, SelectorSpec.of_text("View details"))

    assert result.is_error(ErrorCode.AMBIGUOUS_SELECTOR)
    assert "3" in result.error.message
    assert '"View details"' in result.error.message
    assert result.error.detail("count") == 3
    assert backend.snapshot_calls == 1
    assert clock.sleeps == []


def test_ambiguity_is_never_resolved_by_later_polls(clock):
    backend = FakeBackend([
        refs(e1=("Save", "button"), e2=("Save", "button")),
        refs(e1=("Save", "button")),
    ])

    result = resolve(backend, clock, SelectorSpec.of_text("Save"))

    assert result.is_error(ErrorCode.AMBIGUOUS_SELECTOR)


def test_exact_match_is_not_preferred_over_substring(clock):
    backend = FakeBackend([refs(e1=("Login", "button"), e2=("Login with Google", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_text("Login"))

    assert result.is_error(ErrorCode.AMBIGUOUS_SELECTOR)


def test_resolution_is_idempotent(clock):
    backend = FakeBackend([refs(e1=("Search", "searchbox"), e2=("Submit", "button"))])
    selector = SelectorSpec.of_text("Submit")

    first = resolve(backend, clock, selector)
    second = resolve(backend, clock, selector)

    assert first.data.selector == second.data.selector == "@e2"


def test_matching_rule():
    snapshot = {
        "e1": SnapshotRef(name="Sign in", role="button"),
        "e2": SnapshotRef(name="Email", role="textbox"),
        "e3": SnapshotRef(name="Remember me", role="checkbox"),
    }

    assert find_matching_refs("Sign", snapshot) == ["e1"]
    assert find_matching_refs("textbox", snapshot) == ["e2"]
    assert find_matching_refs("Remember me", snapshot) == ["e3"]
    assert find_matching_refs("Password", snapshot) == []


def test_ref_checks_key_existence(clock):
    backend = FakeBackend([refs(e5=("Anything", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_ref("@e5"))

    assert result.success
    assert result.data.selector == "@e5"


def test_missing_ref_times_out(clock):
    backend = FakeBackend([refs(e1=("Login", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_ref("@e9"), make_context(timeout_ms=300))

    assert result.is_error(ErrorCode.TIMEOUT)


def test_ref_does_not_use_text_matching(clock):
    """引用选择器只检查键是否存在，不按名称匹配"""
    backend = FakeBackend([refs(e1=("e2", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_ref("e2"), make_context(timeout_ms=100))

    assert result.is_error(ErrorCode.TIMEOUT)


def test_no_selector_short_circuits(clock, backend):
    result = resolve(backend, clock, None)

    assert result.success
    assert result.data is None
    assert backend.calls == []
    assert backend.snapshot_calls == 0


def test_css_fast_path_without_confirmation(clock, backend):
    result = resolve(backend, clock, SelectorSpec.of_css("#submit"), confirm=False)

    assert result.data.selector == "#submit"
    assert backend.calls == []
    assert backend.snapshot_calls == 0


def test_css_confirmed_by_visibility_polling(clock, backend):
    backend.queue("is", ok_json({"visible": False}), ok_json({"visible": True}))

    result = resolve(backend, clock, SelectorSpec.of_css("#submit"))

    assert result.success
    assert result.data.selector == "#submit"
    assert backend.calls_for("is") == [["visible", "#submit"], ["visible", "#submit"]]
    assert clock.sleeps == [100]


def test_xpath_confirmed_with_cli_prefix(clock, backend):
    backend.queue("is", ok_json({"visible": True}))

    result = resolve(backend, clock, SelectorSpec.of_xpath("//button[@type='submit']"))

    assert result.data.selector == "xpath=//button[@type='submit']"


def test_snapshot_failure_is_not_retried(clock):
    error = Result.fail(Error.malformed_output("bad snapshot"))
    backend = FakeBackend([error, refs(e1=("Login", "button"))])

    result = resolve(backend, clock, SelectorSpec.of_text("Login"))

    assert result.is_error(ErrorCode.MALFORMED_OUTPUT)
    assert backend.snapshot_calls == 1
