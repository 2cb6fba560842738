"""
等待命令
"""

from flowpilot.core.result import Result
from flowpilot.flows.commands import WaitCommand
from flowpilot.flows.handlers.registry import HandlerRegistry


def build_wait_args(command: WaitCommand) -> list:
    """按等待模式构建 wait 参数"""
    mode = command.mode
    if mode == "ms":
        return [str(command.ms)]
    if mode == "selector":
        return [command.selector.to_cli()]
    if mode == "text":
        return ["--text", command.text]
    if mode == "load":
        return ["--load", command.load.value]
    if mode == "url":
        return ["--url", command.url]
    return ["--fn", command.fn]


@HandlerRegistry.register("wait")
async def handle_wait(backend, command: WaitCommand, ctx) -> Result:
    return await backend.invoke("wait", build_wait_args(command), ctx.execute_options)
