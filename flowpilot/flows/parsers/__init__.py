"""
流程解析器模块

提供 YAML 流程文件的解析功能。
"""

from .yaml_parser import (
    FlowParser,
    FlowLoadError,
    classify_selector,
    expand_variables,
    load_flow,
)

__all__ = [
    "FlowParser",
    "FlowLoadError",
    "classify_selector",
    "expand_variables",
    "load_flow",
]
