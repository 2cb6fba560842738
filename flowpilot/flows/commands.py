"""
命令模型

每条命令是一个以 command 字段区分的 pydantic 模型，
所有命令组成可判别联合 Command。
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SelectorKind(str, Enum):
    """选择器表示形式"""
    REF = "ref"
    CSS = "css"
    XPATH = "xpath"
    TEXT = "text"


class SelectorSpec(BaseModel):
    """
    选择器

    ref / css / xpath / text 四者必须且只能提供一个。
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    ref: Optional[str] = None
    css: Optional[str] = None
    xpath: Optional[str] = None
    text: Optional[str] = None

    @model_validator(mode="after")
    def check_single_representation(self) -> 'SelectorSpec':
        provided = [kind.value for kind in SelectorKind if getattr(self, kind.value) is not None]
        if len(provided) != 1:
            raise ValueError(
                f"选择器必须且只能指定 ref、css、xpath、text 之一，实际: {provided or '无'}"
            )
        if not getattr(self, provided[0]):
            raise ValueError(f"选择器 {provided[0]} 不能为空")
        return self

    @classmethod
    def of_ref(cls, ref: str) -> 'SelectorSpec':
        return cls(ref=ref)

    @classmethod
    def of_css(cls, css: str) -> 'SelectorSpec':
        return cls(css=css)

    @classmethod
    def of_xpath(cls, xpath: str) -> 'SelectorSpec':
        return cls(xpath=xpath)

    @classmethod
    def of_text(cls, text: str) -> 'SelectorSpec':
        return cls(text=text)

    @property
    def kind(self) -> SelectorKind:
        for kind in SelectorKind:
            if getattr(self, kind.value) is not None:
                return kind
        raise ValueError("选择器未指定")

    @property
    def value(self) -> str:
        """原始选择器文本（用于匹配和错误信息）"""
        return getattr(self, self.kind.value)

    @property
    def ref_id(self) -> Optional[str]:
        """去掉 @ 前缀的引用 ID"""
        if self.ref is None:
            return None
        return self.ref[1:] if self.ref.startswith("@") else self.ref

    def to_cli(self) -> str:
        """
        转换为后端命令行选择器

        - ref: @e1
        - css: 原样
        - xpath: xpath=EXPR
        - text: text=TEXT
        """
        kind = self.kind
        if kind == SelectorKind.REF:
            return f"@{self.ref_id}"
        if kind == SelectorKind.CSS:
            return self.css
        if kind == SelectorKind.XPATH:
            return self.xpath if self.xpath.startswith("xpath=") else f"xpath={self.xpath}"
        return f"text={self.text}"

    def __str__(self) -> str:
        return self.value


class LoadState(str, Enum):
    """页面加载状态"""
    LOAD = "load"
    DOMCONTENTLOADED = "domcontentloaded"
    NETWORKIDLE = "networkidle"


class ScrollDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class BaseCommand(BaseModel):
    """命令基类"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    command: str

    @property
    def selector_spec(self) -> Optional[SelectorSpec]:
        """命令携带的选择器（无选择器的命令返回 None）"""
        return getattr(self, "selector", None)


# ========== 导航 ==========

class OpenCommand(BaseCommand):
    command: Literal["open"] = "open"
    url: str


# ========== 交互 ==========

class ClickCommand(BaseCommand):
    command: Literal["click"] = "click"
    selector: SelectorSpec


class TypeCommand(BaseCommand):
    command: Literal["type"] = "type"
    selector: SelectorSpec
    value: str


class FillCommand(BaseCommand):
    command: Literal["fill"] = "fill"
    selector: SelectorSpec
    value: str


class PressCommand(BaseCommand):
    command: Literal["press"] = "press"
    key: str


class HoverCommand(BaseCommand):
    command: Literal["hover"] = "hover"
    selector: SelectorSpec


class SelectCommand(BaseCommand):
    command: Literal["select"] = "select"
    selector: SelectorSpec
    value: str


# ========== 滚动 ==========

class ScrollCommand(BaseCommand):
    command: Literal["scroll"] = "scroll"
    direction: ScrollDirection = ScrollDirection.DOWN
    amount: int = Field(300, ge=0)


class ScrollIntoViewCommand(BaseCommand):
    command: Literal["scrollIntoView"] = "scrollIntoView"
    selector: SelectorSpec


# ========== 等待 ==========

WAIT_MODES = ("ms", "selector", "text", "load", "url", "fn")


class WaitCommand(BaseCommand):
    """
    等待命令

    ms / selector / text / load / url / fn 六种模式互斥，必须且只能指定一种。
    """
    command: Literal["wait"] = "wait"
    ms: Optional[int] = Field(None, ge=0)
    selector: Optional[SelectorSpec] = None
    text: Optional[str] = None
    load: Optional[LoadState] = None
    url: Optional[str] = None
    fn: Optional[str] = None

    @model_validator(mode="after")
    def check_single_mode(self) -> 'WaitCommand':
        modes = [name for name in WAIT_MODES if getattr(self, name) is not None]
        if len(modes) != 1:
            raise ValueError(
                f"wait 必须且只能指定 {', '.join(WAIT_MODES)} 之一，实际: {modes or '无'}"
            )
        return self

    @property
    def mode(self) -> str:
        for name in WAIT_MODES:
            if getattr(self, name) is not None:
                return name
        raise ValueError("wait 未指定模式")

    @property
    def selector_spec(self) -> Optional[SelectorSpec]:
        # wait 自身就是等待，不参与自动等待
        return None


# ========== 捕获 / 脚本 ==========

class ScreenshotCommand(BaseCommand):
    command: Literal["screenshot"] = "screenshot"
    path: str
    full: bool = False


class SnapshotCommand(BaseCommand):
    command: Literal["snapshot"] = "snapshot"


class EvalCommand(BaseCommand):
    command: Literal["eval"] = "eval"
    script: str


# ========== 断言 ==========

class AssertVisibleCommand(BaseCommand):
    command: Literal["assertVisible"] = "assertVisible"
    selector: SelectorSpec


class AssertNotVisibleCommand(BaseCommand):
    command: Literal["assertNotVisible"] = "assertNotVisible"
    selector: SelectorSpec


class AssertEnabledCommand(BaseCommand):
    command: Literal["assertEnabled"] = "assertEnabled"
    selector: SelectorSpec


class AssertCheckedCommand(BaseCommand):
    command: Literal["assertChecked"] = "assertChecked"
    selector: SelectorSpec
    checked: bool = True


Command = Annotated[
    Union[
        OpenCommand,
        ClickCommand,
        TypeCommand,
        FillCommand,
        PressCommand,
        HoverCommand,
        SelectCommand,
        ScrollCommand,
        ScrollIntoViewCommand,
        WaitCommand,
        ScreenshotCommand,
        SnapshotCommand,
        EvalCommand,
        AssertVisibleCommand,
        AssertNotVisibleCommand,
        AssertEnabledCommand,
        AssertCheckedCommand,
    ],
    Field(discriminator="command"),
]

COMMAND_TYPES = {
    cls.model_fields["command"].default: cls
    for cls in (
        OpenCommand, ClickCommand, TypeCommand, FillCommand, PressCommand,
        HoverCommand, SelectCommand, ScrollCommand, ScrollIntoViewCommand,
        WaitCommand, ScreenshotCommand, SnapshotCommand, EvalCommand,
        AssertVisibleCommand, AssertNotVisibleCommand, AssertEnabledCommand,
        AssertCheckedCommand,
    )
}

# 作用于元素的命令，执行前需要自动等待目标出现
AUTO_WAIT_COMMANDS = frozenset({
    "click",
    "type",
    "fill",
    "hover",
    "select",
    "assertEnabled",
    "assertChecked",
})


def requires_auto_wait(command: BaseCommand) -> bool:
    """命令是否需要自动等待"""
    return command.command in AUTO_WAIT_COMMANDS


class Flow(BaseModel):
    """
    流程定义

    Attributes:
        name: 流程名称
        env: 流程级环境变量
        steps: 有序命令列表（${VAR} 已展开）
    """
    model_config = ConfigDict(frozen=True)

    name: str
    env: Dict[str, str] = Field(default_factory=dict)
    steps: List[Command] = Field(default_factory=list)


__all__ = [
    "SelectorKind",
    "SelectorSpec",
    "LoadState",
    "ScrollDirection",
    "BaseCommand",
    "OpenCommand",
    "ClickCommand",
    "TypeCommand",
    "FillCommand",
    "PressCommand",
    "HoverCommand",
    "SelectCommand",
    "ScrollCommand",
    "ScrollIntoViewCommand",
    "WaitCommand",
    "WAIT_MODES",
    "ScreenshotCommand",
    "SnapshotCommand",
    "EvalCommand",
    "AssertVisibleCommand",
    "AssertNotVisibleCommand",
    "AssertEnabledCommand",
    "AssertCheckedCommand",
    "Command",
    "COMMAND_TYPES",
    "AUTO_WAIT_COMMANDS",
    "requires_auto_wait",
    "Flow",
]
