"""
选择器解析 / 自动等待

将逻辑选择器（引用、CSS、XPath、文本）解析为后端可直接操作的目标。
文本和引用选择器轮询后端快照，CSS / XPath 选择器轮询 is visible，
直到唯一命中或超时。

时钟和休眠函数可注入，便于用模拟时钟测试。
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional

from flowpilot.backend.base import BrowserBackend
from flowpilot.backend.output import SnapshotRef, VisibilityData, extract_data
from flowpilot.core.result import Error, Result
from flowpilot.flows.commands import SelectorKind, SelectorSpec
from flowpilot.flows.context import ExecutionContext, ResolvedTarget


logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

# 一次检查：ok(None) 表示本轮未找到，ok(selector) 表示找到，fail 为终止错误
Check = Callable[[], Awaitable[Result[Optional[str]]]]


def monotonic_ms() -> float:
    """单调时钟（毫秒）"""
    return time.monotonic() * 1000


async def sleep_ms(ms: float) -> None:
    await asyncio.sleep(ms / 1000)


def is_matching_element(ref: SnapshotRef, text: str) -> bool:
    """
    元素是否匹配文本

    名称包含文本、角色等于文本、名称等于文本三者任一成立即匹配，
    三者不分优先级，全部计入候选集合。
    """
    return text in ref.name or ref.role == text or ref.name == text


def find_matching_refs(text: str, refs: Dict[str, SnapshotRef]) -> List[str]:
    """返回快照中匹配文本的全部引用 ID（保持快照顺序）"""
    return [ref_id for ref_id, ref in refs.items() if is_matching_element(ref, text)]


class SelectorResolver:
    """
    选择器解析器

    Attributes:
        backend: 浏览器后端
    """

    def __init__(
        self,
        backend: BrowserBackend,
        clock: Clock = None,
        sleep: Sleep = None,
    ):
        self.backend = backend
        self._clock = clock or monotonic_ms
        self._sleep = sleep or sleep_ms

    async def resolve(
        self,
        selector: Optional[SelectorSpec],
        ctx: ExecutionContext,
        confirm: bool = True,
    ) -> Result[Optional[ResolvedTarget]]:
        """
        解析选择器

        Args:
            selector: 逻辑选择器，None 表示命令不需要选择器
            ctx: 执行上下文（提供会话、超时和轮询间隔）
            confirm: 是否需要确认元素可达；为 False 时引用 / CSS / XPath 直接返回

        Returns:
            Result: 成功时为 ResolvedTarget（无选择器时为 None）
        """
        if selector is None:
            return Result.ok(None)

        kind = selector.kind
        if not confirm and kind != SelectorKind.TEXT:
            return Result.ok(ResolvedTarget(selector=selector.to_cli(), source=selector))

        if kind == SelectorKind.TEXT:
            check = self._text_check(selector.value, ctx)
        elif kind == SelectorKind.REF:
            check = self._ref_check(selector.ref_id, ctx)
        else:
            check = self._visibility_check(selector.to_cli(), ctx)

        result = await self._poll(check, selector, ctx)
        return result.map(lambda resolved: ResolvedTarget(selector=resolved, source=selector))

    async def _poll(
        self,
        check: Check,
        selector: SelectorSpec,
        ctx: ExecutionContext,
    ) -> Result[str]:
        start = self._clock()
        poll_count = 0

        while True:
            poll_count += 1
            result = await check()

            if not result.success:
                logger.debug("auto-wait 第 %d 次轮询出错: %s", poll_count, result.error.message)
                return result  # type: ignore

            if result.data is not None:
                logger.debug("auto-wait 第 %d 次轮询命中: %s -> %s", poll_count, selector, result.data)
                return Result.ok(result.data)

            elapsed = self._clock() - start
            if elapsed >= ctx.auto_wait_timeout_ms:
                logger.debug("auto-wait 超时: %s (%d 次轮询)", selector, poll_count)
                return Result.fail(Error.timeout(
                    "auto-wait", [selector.value], ctx.auto_wait_timeout_ms,
                ))

            await self._sleep(ctx.auto_wait_interval_ms)

    def _text_check(self, text: str, ctx: ExecutionContext) -> Check:
        async def check() -> Result[Optional[str]]:
            snapshot = await self.backend.snapshot(ctx.execute_options)
            if not snapshot.success:
                return snapshot  # type: ignore

            matched = find_matching_refs(text, snapshot.data)
            if not matched:
                return Result.ok(None)
            if len(matched) > 1:
                return Result.fail(Error.ambiguous_selector(text, matched))
            return Result.ok(f"@{matched[0]}")

        return check

    def _ref_check(self, ref_id: str, ctx: ExecutionContext) -> Check:
        async def check() -> Result[Optional[str]]:
            snapshot = await self.backend.snapshot(ctx.execute_options)
            if not snapshot.success:
                return snapshot  # type: ignore
            return Result.ok(f"@{ref_id}" if ref_id in snapshot.data else None)

        return check

    def _visibility_check(self, cli_selector: str, ctx: ExecutionContext) -> Check:
        async def check() -> Result[Optional[str]]:
            output = await self.backend.invoke("is", ["visible", cli_selector], ctx.execute_options)
            visibility = output.flat_map(
                lambda raw: extract_data(raw, VisibilityData, "is visible")
            )
            if not visibility.success:
                return visibility  # type: ignore
            return Result.ok(cli_selector if visibility.data.visible else None)

        return check


__all__ = [
    "Clock",
    "Sleep",
    "monotonic_ms",
    "sleep_ms",
    "is_matching_element",
    "find_matching_refs",
    "SelectorResolver",
]
