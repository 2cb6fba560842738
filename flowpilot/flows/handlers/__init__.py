"""
命令处理器

导入各处理器模块完成注册，并校验每个命令标签都有处理器。
"""

from .registry import Handler, HandlerRegistry

from . import assertions, capture, interaction, navigation, scroll, wait  # noqa: F401

from flowpilot.flows.commands import COMMAND_TYPES

HandlerRegistry.verify(COMMAND_TYPES)

__all__ = [
    "Handler",
    "HandlerRegistry",
]
