"""
统一返回结果模块

提供 Result[T] 泛型类，用于后端调用、选择器解析和流程执行结果的标准化返回。
预期内的失败（后端报错、超时、选择器歧义等）一律通过 Result 返回，不抛出异常。
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar
from enum import Enum


T = TypeVar('T')


class ErrorCode(str, Enum):
    """错误码枚举"""
    # 后端错误
    NOT_INSTALLED = "not_installed"
    COMMAND_FAILED = "command_failed"
    TIMEOUT = "timeout"
    MALFORMED_OUTPUT = "malformed_output"

    # 选择器 / 断言错误
    AMBIGUOUS_SELECTOR = "ambiguous_selector"
    ASSERTION_FAILED = "assertion_failed"
    VALIDATION_ERROR = "validation_error"

    # 执行器内部错误
    INFRASTRUCTURE_ERROR = "infrastructure_error"

    # 运行器错误
    ENVIRONMENT_ERROR = "environment_error"
    NO_FLOWS_FOUND = "no_flows_found"
    LOAD_ERROR = "load_error"


@dataclass
class Error:
    """错误信息"""
    code: str
    message: str
    details: Optional[dict] = None

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def detail(self, key: str, default: Any = None) -> Any:
        """读取错误详情字段"""
        if not self.details:
            return default
        return self.details.get(key, default)

    def is_code(self, code: ErrorCode) -> bool:
        """是否为指定错误码"""
        return self.code == code.value

    # ========== 工厂方法 ==========

    @classmethod
    def not_installed(cls, message: str) -> 'Error':
        """创建后端未安装错误"""
        return cls(code=ErrorCode.NOT_INSTALLED.value, message=message)

    @classmethod
    def command_failed(
        cls,
        command: str,
        args: Sequence[str],
        exit_code: int,
        stderr: str = "",
        raw_error: Optional[str] = None,
        message: Optional[str] = None,
    ) -> 'Error':
        """
        创建命令执行失败错误

        Args:
            command: 后端动作名称
            args: 动作参数
            exit_code: 进程退出码
            stderr: 标准错误输出
            raw_error: 从后端 JSON 输出中解析出的错误消息
            message: 展示用消息（为空时由调用方回退到 raw_error / stderr）
        """
        if message is None:
            message = raw_error or f"命令执行失败: {command} {' '.join(args)}".rstrip()
        return cls(
            code=ErrorCode.COMMAND_FAILED.value,
            message=message,
            details={
                "command": command,
                "args": list(args),
                "exit_code": exit_code,
                "stderr": stderr,
                "raw_error": raw_error,
            },
        )

    @classmethod
    def timeout(cls, command: str, args: Sequence[str], timeout_ms: int) -> 'Error':
        """创建超时错误"""
        return cls(
            code=ErrorCode.TIMEOUT.value,
            message=f"{command} 超时 (>{timeout_ms}ms)",
            details={"command": command, "args": list(args), "timeout_ms": timeout_ms},
        )

    @classmethod
    def malformed_output(cls, message: str, raw_output: str = "", command: str = None) -> 'Error':
        """创建后端输出格式错误"""
        return cls(
            code=ErrorCode.MALFORMED_OUTPUT.value,
            message=message,
            details={"command": command, "raw_output": raw_output},
        )

    @classmethod
    def ambiguous_selector(cls, selector: str, ref_ids: List[str]) -> 'Error':
        """创建选择器歧义错误"""
        return cls(
            code=ErrorCode.AMBIGUOUS_SELECTOR.value,
            message=(
                f'选择器 "{selector}" 匹配到 {len(ref_ids)} 个元素，'
                f"请使用更具体的选择器"
            ),
            details={"selector": selector, "count": len(ref_ids), "ref_ids": list(ref_ids)},
        )

    @classmethod
    def assertion_failed(
        cls,
        command: str,
        selector: str,
        message: str,
        expected: Any = None,
        actual: Any = None,
    ) -> 'Error':
        """创建断言失败错误"""
        return cls(
            code=ErrorCode.ASSERTION_FAILED.value,
            message=message,
            details={
                "command": command,
                "selector": selector,
                "expected": expected,
                "actual": actual,
            },
        )

    @classmethod
    def validation(cls, message: str, details: dict = None) -> 'Error':
        """创建验证错误"""
        return cls(
            code=ErrorCode.VALIDATION_ERROR.value,
            message=message,
            details=details,
        )

    @classmethod
    def infrastructure(cls, message: str, command: str, raw_error: str = "") -> 'Error':
        """创建执行器内部错误"""
        return cls(
            code=ErrorCode.INFRASTRUCTURE_ERROR.value,
            message=message,
            details={"command": command, "raw_error": raw_error},
        )

    @classmethod
    def environment(cls, message: str) -> 'Error':
        """创建运行环境错误"""
        return cls(code=ErrorCode.ENVIRONMENT_ERROR.value, message=message)

    @classmethod
    def no_flows_found(cls, message: str = "未找到流程文件") -> 'Error':
        """创建流程缺失错误"""
        return cls(code=ErrorCode.NO_FLOWS_FOUND.value, message=message)

    @classmethod
    def load_error(cls, message: str, file_path: str = None) -> 'Error':
        """创建流程加载错误"""
        return cls(
            code=ErrorCode.LOAD_ERROR.value,
            message=message,
            details={"file_path": file_path},
        )


@dataclass
class Result(Generic[T]):
    """
    统一返回结果类

    Attributes:
        success: 是否成功
        data: 返回数据（成功时）
        error: 错误信息（失败时）
    """
    success: bool
    data: Optional[T] = None
    error: Optional[Error] = None

    # ========== 工厂方法 ==========

    @classmethod
    def ok(cls, data: T = None) -> 'Result[T]':
        """创建成功结果"""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: Error) -> 'Result[T]':
        """创建失败结果"""
        return cls(success=False, error=error)

    def is_error(self, code: ErrorCode = None) -> bool:
        """检查是否是错误（可选指定错误码）"""
        if self.success:
            return False
        if code is None:
            return True
        return self.error is not None and self.error.code == code.value

    # ========== 类型转换 ==========

    def map(self, func: Callable[[T], Any]) -> 'Result[Any]':
        """映射数据"""
        if self.success:
            return Result.ok(func(self.data))
        return self  # type: ignore

    def flat_map(self, func: Callable[[T], 'Result[Any]']) -> 'Result[Any]':
        """平展映射（用于链式操作）"""
        if self.success:
            return func(self.data)
        return self  # type: ignore


__all__ = [
    "Result",
    "Error",
    "ErrorCode",
]
