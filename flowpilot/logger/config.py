"""
日志配置模块
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .formatters import FormatterFactory


ROOT_LOGGER_NAME = "flowpilot"


class LogLevel(Enum):
    """日志级别"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogFormat(Enum):
    """日志格式"""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


@dataclass
class LogConfig:
    """
    日志配置

    Attributes:
        level: 日志级别
        format: 日志格式
        enable_console: 是否输出到控制台（stderr）
        log_file: 日志文件路径，为空时不写文件
    """
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.SIMPLE
    enable_console: bool = True
    log_file: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "level": self.level.name,
            "format": self.format.value,
            "enable_console": self.enable_console,
            "log_file": self.log_file,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LogConfig':
        return cls(
            level=LogLevel[data.get("level", "INFO").upper()],
            format=LogFormat(data.get("format", "simple").lower()),
            enable_console=data.get("enable_console", True),
            log_file=data.get("log_file"),
        )

    @classmethod
    def default(cls) -> 'LogConfig':
        return cls()


def configure_logging(config: LogConfig = None) -> logging.Logger:
    """
    配置 flowpilot 日志记录器

    重复调用会替换之前安装的处理器。

    Args:
        config: 日志配置

    Returns:
        flowpilot 根日志记录器
    """
    config = config or LogConfig.default()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.level.value)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = FormatterFactory.create(config.format.value)

    if config.enable_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


__all__ = [
    "ROOT_LOGGER_NAME",
    "LogLevel",
    "LogFormat",
    "LogConfig",
    "configure_logging",
]
