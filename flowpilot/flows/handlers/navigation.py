"""
导航与键盘命令
"""

from flowpilot.flows.commands import OpenCommand, PressCommand
from flowpilot.flows.handlers.registry import HandlerRegistry


@HandlerRegistry.register("open")
async def handle_open(backend, command: OpenCommand, ctx):
    return await backend.invoke("open", [command.url], ctx.execute_options)


@HandlerRegistry.register("press")
async def handle_press(backend, command: PressCommand, ctx):
    return await backend.invoke("press", [command.key], ctx.execute_options)
