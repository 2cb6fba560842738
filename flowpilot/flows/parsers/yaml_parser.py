"""
YAML 流程解析器

将 YAML 流程文件解析为 Flow：

- 单文档: 命令列表
- 多文档: 第一个文档包含 env，最后一个文档为命令列表

每个步骤是单键映射 {命令: 参数}，参数为标量时填充命令的主字段。
${VAR} 占位符按 流程 env < 运行 env < 进程环境变量 的优先级展开。
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import TypeAdapter, ValidationError

from flowpilot.core.result import Error, Result
from flowpilot.flows.commands import COMMAND_TYPES, Command, Flow


VARIABLE_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# 标量参数对应的主字段
PRIMARY_FIELDS = {
    "open": "url",
    "click": "selector",
    "hover": "selector",
    "press": "key",
    "scrollIntoView": "selector",
    "screenshot": "path",
    "eval": "script",
    "assertVisible": "selector",
    "assertNotVisible": "selector",
    "assertEnabled": "selector",
    "assertChecked": "selector",
}

# YAML 中可能写成数字、需要转为字符串的字段
STRING_FIELDS = ("url", "value", "key", "text", "path", "script", "fn")

_command_adapter = TypeAdapter(Command)


class FlowLoadError(Exception):
    """流程文件内容无效"""


def classify_selector(value: str) -> Dict[str, str]:
    """
    按写法识别选择器类型

    - @e1 -> ref
    - xpath=EXPR 或 // 开头 -> xpath
    - # . [ 开头 -> css
    - 其余 -> text
    """
    if value.startswith("@"):
        return {"ref": value}
    if value.startswith("xpath="):
        return {"xpath": value[len("xpath="):]}
    if value.startswith("//"):
        return {"xpath": value}
    if value.startswith(("#", ".", "[")):
        return {"css": value}
    return {"text": value}


def expand_variables(value: Any, env: Mapping[str, str], location: str = "") -> Any:
    """
    递归展开 ${VAR} 占位符

    Raises:
        FlowLoadError: 引用了未定义的变量
    """
    if isinstance(value, str):
        def replace(match):
            name = match.group(1)
            if name not in env:
                raise FlowLoadError(f"未定义的环境变量 ${{{name}}}" + (f" ({location})" if location else ""))
            return env[name]
        return VARIABLE_PATTERN.sub(replace, value)
    if isinstance(value, list):
        return [expand_variables(item, env, f"{location}[{i}]") for i, item in enumerate(value)]
    if isinstance(value, dict):
        return {key: expand_variables(item, env, f"{location}.{key}" if location else str(key))
                for key, item in value.items()}
    return value


class FlowParser:
    """
    YAML 流程解析器

    Attributes:
        process_env: 进程环境变量（默认 os.environ）
    """

    def __init__(self, process_env: Mapping[str, str] = None):
        self.process_env = os.environ if process_env is None else process_env

    def load_file(self, path: str, run_env: Dict[str, str] = None) -> Result[Flow]:
        """从文件加载流程，流程名取文件名"""
        file_path = Path(path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as e:
            return Result.fail(Error.load_error(f"无法读取流程文件: {e}", str(path)))
        return self.parse(text, file_path.name, run_env, file_path=str(path))

    def parse(
        self,
        text: str,
        name: str,
        run_env: Dict[str, str] = None,
        file_path: str = None,
    ) -> Result[Flow]:
        """
        解析 YAML 文本

        Args:
            text: YAML 文本
            name: 流程名称
            run_env: 运行级环境变量
            file_path: 文件路径（用于错误信息）

        Returns:
            Result[Flow]
        """
        try:
            documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
        except yaml.YAMLError as e:
            return Result.fail(Error.load_error(f"YAML 语法错误: {e}", file_path))

        try:
            flow_env, raw_steps = self._split_documents(documents)
            env = {**flow_env, **(run_env or {}), **self.process_env}
            steps = [
                self._parse_step(expand_variables(step, env, f"步骤 {i + 1}"), i)
                for i, step in enumerate(raw_steps)
            ]
        except FlowLoadError as e:
            return Result.fail(Error.load_error(str(e), file_path))

        return Result.ok(Flow(name=name, env=flow_env, steps=steps))

    def _split_documents(self, documents: List[Any]):
        if not documents:
            raise FlowLoadError("流程文件为空")

        env: Dict[str, str] = {}
        if len(documents) > 1:
            first = documents[0]
            if isinstance(first, dict) and isinstance(first.get("env"), dict):
                env = {str(k): str(v) for k, v in first["env"].items() if v is not None}

        steps = documents[-1]
        if not isinstance(steps, list):
            raise FlowLoadError("命令列表必须是 YAML 序列")
        return env, steps

    def _parse_step(self, step: Any, index: int):
        if not isinstance(step, dict) or len(step) != 1:
            raise FlowLoadError(f"步骤 {index + 1} 必须是单键映射 {{命令: 参数}}")

        (name, payload), = step.items()
        if name not in COMMAND_TYPES:
            raise FlowLoadError(f"步骤 {index + 1}: 未知命令 '{name}'")

        data = self._normalize_payload(name, payload, index)
        data["command"] = name
        try:
            return _command_adapter.validate_python(data)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise FlowLoadError(f"步骤 {index + 1} ({name}) 无效: {location} {first['msg']}") from e

    def _normalize_payload(self, name: str, payload: Any, index: int) -> Dict[str, Any]:
        if payload is None:
            data: Dict[str, Any] = {}
        elif isinstance(payload, dict):
            data = dict(payload)
        elif name == "wait":
            data = self._wait_scalar(payload)
        elif name in PRIMARY_FIELDS:
            data = {PRIMARY_FIELDS[name]: payload}
        else:
            raise FlowLoadError(f"步骤 {index + 1}: 命令 '{name}' 需要映射形式的参数")

        if isinstance(data.get("selector"), str):
            data["selector"] = classify_selector(data["selector"])

        for field_name in STRING_FIELDS:
            value = data.get(field_name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                data[field_name] = str(value)
        return data

    def _wait_scalar(self, payload: Any) -> Dict[str, Any]:
        """wait 标量参数: 数字为毫秒，文本选择器为 text 模式，其余为 selector 模式"""
        if isinstance(payload, int) and not isinstance(payload, bool):
            return {"ms": payload}
        selector = classify_selector(str(payload))
        if "text" in selector:
            return {"text": selector["text"]}
        return {"selector": selector}


def load_flow(path: str, run_env: Dict[str, str] = None) -> Result[Flow]:
    """便捷函数：加载单个流程文件"""
    return FlowParser().load_file(path, run_env)


__all__ = [
    "FlowParser",
    "FlowLoadError",
    "classify_selector",
    "expand_variables",
    "load_flow",
]
