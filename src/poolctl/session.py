"""
会话能力对象
交互模式、确认开关与用户可见输出都通过它显式传递，不使用全局状态
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from rich.console import Console
from rich.markup import escape

from .core.types import OutputFormat
from .prompts import Prompter, RichPrompter
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Session:
    """一次命令调用的会话配置"""

    prompter: Prompter = field(default_factory=RichPrompter)
    console: Console = field(default_factory=Console)
    err_console: Console = field(default_factory=lambda: Console(stderr=True))
    interactive: bool = False
    assume_yes: bool = False
    output: OutputFormat = OutputFormat.TEXT

    def promote(self) -> Session:
        """升级为交互模式，返回新会话"""
        if self.interactive:
            return self
        logger.debug("session_promoted")
        return replace(self, interactive=True)

    @property
    def structured_output(self) -> bool:
        return self.output != OutputFormat.TEXT

    @property
    def reporter(self) -> Console:
        # 结构化输出时提示信息走 stderr，保持 stdout 可解析
        return self.err_console if self.structured_output else self.console

    def info(self, message: str) -> None:
        self.reporter.print(f"[cyan]INFO:[/cyan] {escape(message)}", highlight=False, soft_wrap=True)

    def warn(self, message: str) -> None:
        self.reporter.print(f"[yellow]WARN:[/yellow] {escape(message)}", highlight=False, soft_wrap=True)

    def confirm(self, action: str) -> bool:
        """危险操作确认，--yes 时直接通过"""
        if self.assume_yes:
            return True
        return self.prompter.ask_bool(f"Are you sure you want to {action}?", default=False)

    def confirm_raw(self, question: str) -> bool:
        """原样提问的确认，--yes 时直接通过"""
        if self.assume_yes:
            return True
        return self.prompter.ask_bool(question, default=False)


__all__ = ["Session"]
