"""
滚动命令
"""

from flowpilot.flows.commands import ScrollCommand, ScrollIntoViewCommand, SelectorKind
from flowpilot.flows.handlers.registry import HandlerRegistry


@HandlerRegistry.register("scroll")
async def handle_scroll(backend, command: ScrollCommand, ctx):
    return await backend.invoke(
        "scroll",
        [command.direction.value, str(command.amount)],
        ctx.execute_options,
    )


@HandlerRegistry.register("scrollIntoView")
async def handle_scroll_into_view(backend, command: ScrollIntoViewCommand, ctx):
    """
    将元素滚动到可视区域

    - 文本: 先 wait --text 等待出现，再 scrollintoview text=T
    - 引用: 后端的 scrollintoview 不接受引用，改用 focus 触发滚动
    - CSS / XPath: scrollintoview SEL
    """
    spec = command.selector
    options = ctx.execute_options

    if ctx.resolved_target is None and spec.kind == SelectorKind.TEXT:
        waited = await backend.invoke("wait", ["--text", spec.text], options)
        if not waited.success:
            return waited
        return await backend.invoke("scrollintoview", [spec.to_cli()], options)

    selector = ctx.cli_selector(spec)
    if selector.startswith("@"):
        return await backend.invoke("focus", [selector], options)
    return await backend.invoke("scrollintoview", [selector], options)
