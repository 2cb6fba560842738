"""
后端输出解析模块

解析 agent-browser 的 JSON 输出信封 {success, data, error}
以及 snapshot 数据，任何结构不符都视为 malformed_output。
"""

import json
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from flowpilot.core.result import Error, Result


TModel = TypeVar('TModel', bound=BaseModel)


class BackendOutput(BaseModel):
    """后端 JSON 输出信封"""
    success: bool
    data: Any
    error: Optional[str]


class SnapshotRef(BaseModel):
    """快照中的元素引用"""
    name: str
    role: str


class SnapshotData(BaseModel):
    """snapshot 命令的数据部分"""
    snapshot: str = ""
    refs: Dict[str, SnapshotRef]


class VisibilityData(BaseModel):
    visible: bool


class EnabledData(BaseModel):
    enabled: bool


class CheckedData(BaseModel):
    checked: bool


def parse_json_output(raw_output: str, command: str = None) -> Result[BackendOutput]:
    """
    解析后端 JSON 输出

    Args:
        raw_output: 原始标准输出
        command: 动作名称（用于错误信息）

    Returns:
        Result[BackendOutput]
    """
    try:
        parsed = json.loads(raw_output)
    except json.JSONDecodeError as e:
        return Result.fail(Error.malformed_output(
            f"后端输出不是有效 JSON: {e}", raw_output, command,
        ))

    try:
        return Result.ok(BackendOutput.model_validate(parsed))
    except ValidationError:
        return Result.fail(Error.malformed_output(
            "后端输出结构无效: 缺少 success、data 或 error 字段", raw_output, command,
        ))


def extract_data(raw_output: str, model: Type[TModel], command: str) -> Result[TModel]:
    """
    解析输出信封并按模型校验 data 字段

    success=false 视为命令失败；data 结构不符视为 malformed_output。
    """
    envelope = parse_json_output(raw_output, command)
    if not envelope.success:
        return envelope  # type: ignore

    output = envelope.data
    if not output.success:
        return Result.fail(Error.command_failed(
            command=command,
            args=[],
            exit_code=0,
            raw_error=output.error,
        ))

    try:
        return Result.ok(model.model_validate(output.data))
    except ValidationError as e:
        return Result.fail(Error.malformed_output(
            f"{command} 输出数据无效: {e.error_count()} 处校验失败", raw_output, command,
        ))


def parse_snapshot_refs(raw_output: str) -> Result[Dict[str, SnapshotRef]]:
    """解析 snapshot 输出为 {refId: SnapshotRef}"""
    return extract_data(raw_output, SnapshotData, "snapshot").map(lambda data: data.refs)


def extract_error_message(stdout: str) -> Optional[str]:
    """从失败命令的 JSON 输出中提取 error 字段"""
    try:
        parsed = json.loads(stdout)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), str):
        return parsed["error"]
    return None


__all__ = [
    "BackendOutput",
    "SnapshotRef",
    "SnapshotData",
    "VisibilityData",
    "EnabledData",
    "CheckedData",
    "parse_json_output",
    "extract_data",
    "parse_snapshot_refs",
    "extract_error_message",
]
