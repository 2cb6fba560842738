"""
流程执行日志模块

每个流程一份执行日志（journal），按步骤记录命令、耗时、输出和错误。
引擎在每个步骤前后写入条目，结束时可序列化为 JSON 保存，便于事后审计。
"""

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


LOGGER_NAME = "flowpilot.execution"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExecutionLogEntry:
    """
    执行日志条目

    step_index / command 为空表示流程级条目（开始、结束）。
    """
    id: str
    timestamp: str
    level: str
    message: str
    step_index: Optional[int] = None
    command: Optional[str] = None
    duration_ms: Optional[int] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ExecutionLogger:
    """
    流程执行日志

    Attributes:
        flow_name: 流程名称
        session_name: 流程使用的浏览器会话
        status: 最终状态 passed / failed / error，未结束时为 None
    """

    def __init__(self, flow_name: str, session_name: str = None):
        self.flow_name = flow_name
        self.session_name = session_name
        self.status: Optional[str] = None
        self._entries: List[ExecutionLogEntry] = []
        self._commands: Dict[int, str] = {}
        self._last_step: Optional[int] = None
        self._started_at: Optional[datetime] = None
        self._finished_at: Optional[datetime] = None
        self._logger = logging.getLogger(LOGGER_NAME)

    @property
    def entries(self) -> List[ExecutionLogEntry]:
        return list(self._entries)

    # ========== 写入 ==========

    def start(self) -> None:
        self._started_at = _utcnow()
        self.log("info", f"流程 '{self.flow_name}' 开始 (会话 {self.session_name})")

    def finish(self, status: str, message: str = None) -> None:
        self._finished_at = _utcnow()
        self.status = status
        self.log(
            "info" if status == "passed" else "error",
            message or f"流程 '{self.flow_name}' 结束: {status}",
        )

    def step_start(self, step_index: int, command: str) -> None:
        self._commands[step_index] = command
        self._last_step = step_index
        self.log("debug", f"步骤 {step_index + 1} ({command}) 开始", step_index=step_index)

    def step_end(
        self,
        step_index: int = None,
        success: bool = True,
        duration_ms: int = None,
        result: Dict[str, Any] = None,
        error: Dict[str, Any] = None,
    ) -> None:
        """记录步骤结束；step_index 省略时指最近开始的步骤"""
        if step_index is None:
            step_index = self._last_step
        outcome = "通过" if success else "失败"
        self.log(
            "info" if success else "error",
            f"步骤 {step_index + 1} ({self._commands.get(step_index)}) {outcome}",
            step_index=step_index,
            duration_ms=duration_ms,
            result=result,
            error=error,
        )

    def log(
        self,
        level: str,
        message: str,
        step_index: int = None,
        duration_ms: int = None,
        result: Dict[str, Any] = None,
        error: Dict[str, Any] = None,
    ) -> ExecutionLogEntry:
        """
        追加一条日志，并转发到 flowpilot.execution 记录器

        Args:
            level: debug / info / warning / error
            message: 日志消息
            step_index: 步骤序号（从 0 开始）
            duration_ms: 步骤耗时
            result: 步骤输出
            error: 错误信息（Error.to_dict 或 StepError.to_dict）
        """
        command = self._commands.get(step_index) if step_index is not None else None
        entry = ExecutionLogEntry(
            id=uuid.uuid4().hex,
            timestamp=_utcnow().isoformat(),
            level=level,
            message=message,
            step_index=step_index,
            command=command,
            duration_ms=duration_ms,
            result=result,
            error=error,
        )
        self._entries.append(entry)

        self._logger.log(
            logging.getLevelName(level.upper()),
            "[%s] %s",
            self.flow_name,
            message,
            extra={
                "flow_name": self.flow_name,
                "session_name": self.session_name,
                "step_index": step_index,
                "command": command,
                "duration_ms": duration_ms,
            },
        )
        return entry

    # ========== 查询 ==========

    def get_errors(self) -> List[ExecutionLogEntry]:
        return [entry for entry in self._entries if entry.is_error]

    def get_entries_by_step(self, step_index: int) -> List[ExecutionLogEntry]:
        return [entry for entry in self._entries if entry.step_index == step_index]

    def get_duration_ms(self) -> Optional[int]:
        if self._started_at is None or self._finished_at is None:
            return None
        return int((self._finished_at - self._started_at).total_seconds() * 1000)

    def step_summaries(self) -> List[Dict[str, Any]]:
        """每个已执行步骤的摘要（序号、命令、状态、耗时）"""
        summaries = []
        for index in sorted(self._commands):
            ended = [e for e in self.get_entries_by_step(index) if e.level in ("info", "error")]
            last = ended[-1] if ended else None
            summaries.append({
                "step_index": index,
                "command": self._commands[index],
                "status": None if last is None else ("failed" if last.is_error else "passed"),
                "duration_ms": None if last is None else last.duration_ms,
            })
        return summaries

    # ========== 序列化 ==========

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow_name": self.flow_name,
            "session_name": self.session_name,
            "status": self.status,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "finished_at": self._finished_at.isoformat() if self._finished_at else None,
            "duration_ms": self.get_duration_ms(),
            "steps": self.step_summaries(),
            "entry_count": len(self._entries),
            "error_count": len(self.get_errors()),
            "entries": [entry.to_dict() for entry in self._entries],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent, default=str)

    def default_filename(self) -> str:
        """
        <流程名>-<会话名>-<随机后缀>.json

        顺序执行的流程可能共用同一会话，文件名带上流程名和随机后缀，
        每个流程各自一份日志。
        """
        parts = [self.flow_name]
        if self.session_name:
            parts.append(self.session_name)
        parts.append(uuid.uuid4().hex[:6])
        return "{}.json".format("-".join(parts).replace("/", "_").replace("\\", "_"))

    def save_to_file(self, filepath: str) -> None:
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")


__all__ = [
    "LOGGER_NAME",
    "ExecutionLogEntry",
    "ExecutionLogger",
]
