"""
配置模块

提供运行器和日志的配置管理，支持从 FLOWPILOT_* 环境变量加载。
"""

import os
import shlex
import tempfile
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from flowpilot.backend.agent_browser import DEFAULT_BACKEND_COMMAND
from flowpilot.core.context import DEFAULT_COMMAND_TIMEOUT_MS, DEFAULT_SESSION_PREFIX
from flowpilot.flows.context import DEFAULT_AUTO_WAIT_INTERVAL_MS, DEFAULT_AUTO_WAIT_TIMEOUT_MS
from flowpilot.logger.config import LogConfig, LogFormat, LogLevel


ENV_PREFIX = "FLOWPILOT_"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RunnerSettings:
    """运行器设置"""
    command_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS
    auto_wait_timeout_ms: int = DEFAULT_AUTO_WAIT_TIMEOUT_MS
    auto_wait_interval_ms: int = DEFAULT_AUTO_WAIT_INTERVAL_MS
    screenshot: bool = True
    bail: bool = True
    parallel: int = 1
    headed: bool = False
    session_prefix: str = DEFAULT_SESSION_PREFIX
    backend_command: List[str] = field(default_factory=lambda: list(DEFAULT_BACKEND_COMMAND))
    screenshot_dir: str = field(default_factory=tempfile.gettempdir)


@dataclass
class LogSettings:
    """日志设置"""
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.SIMPLE
    file_path: Optional[str] = None
    execution_log_dir: Optional[str] = None

    def to_log_config(self) -> LogConfig:
        return LogConfig(level=self.level, format=self.format, log_file=self.file_path)


@dataclass
class AppConfig:
    """应用配置"""
    runner: RunnerSettings = field(default_factory=RunnerSettings)
    log: LogSettings = field(default_factory=LogSettings)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "AppConfig":
        """从环境变量加载配置"""
        environ = os.environ if environ is None else environ
        defaults = RunnerSettings()

        def get(name: str, default=None):
            return environ.get(ENV_PREFIX + name, default)

        backend_command = get("BACKEND_COMMAND")

        runner = RunnerSettings(
            command_timeout_ms=int(get("COMMAND_TIMEOUT_MS", defaults.command_timeout_ms)),
            auto_wait_timeout_ms=int(get("AUTO_WAIT_TIMEOUT_MS", defaults.auto_wait_timeout_ms)),
            auto_wait_interval_ms=int(get("AUTO_WAIT_INTERVAL_MS", defaults.auto_wait_interval_ms)),
            screenshot=_parse_bool(get("SCREENSHOT", "true")),
            bail=_parse_bool(get("BAIL", "true")),
            parallel=max(1, int(get("PARALLEL", defaults.parallel))),
            headed=_parse_bool(get("HEADED", "false")),
            session_prefix=get("SESSION_PREFIX", defaults.session_prefix),
            backend_command=shlex.split(backend_command) if backend_command else defaults.backend_command,
            screenshot_dir=get("SCREENSHOT_DIR", defaults.screenshot_dir),
        )

        log = LogSettings(
            level=LogLevel[get("LOG_LEVEL", "INFO").upper()],
            format=LogFormat(get("LOG_FORMAT", "simple").lower()),
            file_path=get("LOG_FILE"),
            execution_log_dir=get("EXECUTION_LOG_DIR"),
        )

        return cls(runner=runner, log=log)

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "runner": {
                "command_timeout_ms": self.runner.command_timeout_ms,
                "auto_wait_timeout_ms": self.runner.auto_wait_timeout_ms,
                "auto_wait_interval_ms": self.runner.auto_wait_interval_ms,
                "screenshot": self.runner.screenshot,
                "bail": self.runner.bail,
                "parallel": self.runner.parallel,
                "headed": self.runner.headed,
                "session_prefix": self.runner.session_prefix,
                "backend_command": self.runner.backend_command,
                "screenshot_dir": self.runner.screenshot_dir,
            },
            "log": {
                "level": self.log.level.name,
                "format": self.log.format.value,
                "file_path": self.log.file_path,
                "execution_log_dir": self.log.execution_log_dir,
            },
        }


# 全局配置实例
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置"""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """设置全局配置"""
    global _config
    _config = config


def reset_config() -> None:
    """重置配置"""
    global _config
    _config = None


__all__ = [
    "RunnerSettings",
    "LogSettings",
    "AppConfig",
    "get_config",
    "set_config",
    "reset_config",
]
