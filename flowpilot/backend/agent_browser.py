"""
agent-browser 命令行后端

每个动作对应一次 agent-browser 进程调用，超时时显式终止进程。
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from flowpilot.backend.base import BrowserBackend
from flowpilot.backend.output import SnapshotRef, extract_error_message, parse_snapshot_refs
from flowpilot.core.context import ExecuteOptions
from flowpilot.core.result import Error, ErrorCode, Result


logger = logging.getLogger(__name__)

DEFAULT_BACKEND_COMMAND = ("npx", "agent-browser")
CHECK_TIMEOUT_MS = 30000


def build_args(
    action: str,
    args: Sequence[str],
    session_name: Optional[str] = None,
    headed: bool = False,
) -> List[str]:
    """
    构建命令行参数

    Returns:
        [action, *args, "--json", "--session", NAME, "--headed"]
    """
    result = [action, *args, "--json"]
    if session_name is not None:
        result.extend(["--session", session_name])
    if headed:
        result.append("--headed")
    return result


class AgentBrowserBackend(BrowserBackend):
    """
    agent-browser 后端

    Attributes:
        command: 启动 agent-browser 的命令前缀
    """

    def __init__(self, command: Sequence[str] = DEFAULT_BACKEND_COMMAND):
        self.command = list(command)

    async def invoke(
        self,
        action: str,
        args: Sequence[str],
        options: ExecuteOptions = None,
    ) -> Result[str]:
        options = options or ExecuteOptions()
        full_args = build_args(action, args, options.session_name, options.headed)
        logger.debug("invoke: %s %s", " ".join(self.command), " ".join(full_args))

        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                *full_args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=options.cwd,
            )
        except OSError as e:
            return Result.fail(Error.not_installed(f"无法启动 agent-browser: {e}"))

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(),
                timeout=options.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            await self._terminate(proc)
            logger.warning("后端调用超时: %s (>%sms)", action, options.timeout_ms)
            return Result.fail(Error.timeout(action, args, options.timeout_ms))

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if proc.returncode == 0:
            return Result.ok(stdout)

        raw_error = extract_error_message(stdout)
        logger.debug("命令失败: %s exit=%s error=%s", action, proc.returncode, raw_error)
        return Result.fail(Error.command_failed(
            command=action,
            args=args,
            exit_code=proc.returncode if proc.returncode is not None else 1,
            stderr=stderr,
            raw_error=raw_error,
        ))

    async def snapshot(self, options: ExecuteOptions = None) -> Result[Dict[str, SnapshotRef]]:
        result = await self.invoke("snapshot", ["-i"], options)
        return result.flat_map(parse_snapshot_refs)

    async def close(self, session_name: str) -> Result[None]:
        result = await self.invoke("close", [], ExecuteOptions(session_name=session_name))
        return result.map(lambda _: None)

    async def check(self) -> Result[None]:
        result = await self.invoke("--help", [], ExecuteOptions(timeout_ms=CHECK_TIMEOUT_MS))
        if result.success:
            return Result.ok()
        if result.is_error(ErrorCode.NOT_INSTALLED):
            return result  # type: ignore
        return Result.fail(Error.not_installed(
            f"agent-browser 检查失败: {result.error.message}"
        ))

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """终止超时的后端进程并回收"""
        try:
            proc.kill()
        except ProcessLookupError:
            return
        await proc.wait()


__all__ = [
    "DEFAULT_BACKEND_COMMAND",
    "AgentBrowserBackend",
    "build_args",
]
