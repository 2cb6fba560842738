"""
元素交互命令

click / hover / type / fill / select，目标选择器优先使用自动等待解析出的引用。
"""

from flowpilot.flows.commands import (
    ClickCommand,
    FillCommand,
    HoverCommand,
    SelectCommand,
    TypeCommand,
)
from flowpilot.flows.handlers.registry import HandlerRegistry


@HandlerRegistry.register("click")
async def handle_click(backend, command: ClickCommand, ctx):
    selector = ctx.cli_selector(command.selector)
    return await backend.invoke("click", [selector], ctx.execute_options)


@HandlerRegistry.register("hover")
async def handle_hover(backend, command: HoverCommand, ctx):
    selector = ctx.cli_selector(command.selector)
    return await backend.invoke("hover", [selector], ctx.execute_options)


@HandlerRegistry.register("type")
async def handle_type(backend, command: TypeCommand, ctx):
    selector = ctx.cli_selector(command.selector)
    return await backend.invoke("type", [selector, command.value], ctx.execute_options)


@HandlerRegistry.register("fill")
async def handle_fill(backend, command: FillCommand, ctx):
    selector = ctx.cli_selector(command.selector)
    return await backend.invoke("fill", [selector, command.value], ctx.execute_options)


@HandlerRegistry.register("select")
async def handle_select(backend, command: SelectCommand, ctx):
    selector = ctx.cli_selector(command.selector)
    return await backend.invoke("select", [selector, command.value], ctx.execute_options)
