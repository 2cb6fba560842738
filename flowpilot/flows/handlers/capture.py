"""
截图 / 快照 / 脚本执行命令
"""

from flowpilot.flows.commands import EvalCommand, ScreenshotCommand, SnapshotCommand
from flowpilot.flows.handlers.registry import HandlerRegistry


@HandlerRegistry.register("screenshot")
async def handle_screenshot(backend, command: ScreenshotCommand, ctx):
    args = [command.path]
    if command.full:
        args.append("--full")
    return await backend.invoke("screenshot", args, ctx.execute_options)


@HandlerRegistry.register("snapshot")
async def handle_snapshot(backend, command: SnapshotCommand, ctx):
    return await backend.invoke("snapshot", [], ctx.execute_options)


@HandlerRegistry.register("eval")
async def handle_eval(backend, command: EvalCommand, ctx):
    return await backend.invoke("eval", [command.script], ctx.execute_options)
