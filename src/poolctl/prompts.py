"""
交互输入
Prompter 协议与基于 rich 的实现
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, InvalidResponse, Prompt

from .core.errors import PromptAborted

Validator = Callable[[Any], None]


@runtime_checkable
class Prompter(Protocol):
    """交互输入协议，解析器只通过它向用户提问"""

    def ask_string(self, question: str, default: str = "", required: bool = False,
                   validators: Sequence[Validator] = (), help: str = "") -> str:
        ...

    def ask_int(self, question: str, default: int = 0,
                validators: Sequence[Validator] = (), help: str = "") -> int:
        ...

    def ask_bool(self, question: str, default: bool = False, help: str = "") -> bool:
        ...

    def ask_option(self, question: str, options: Sequence[str], default: Optional[str] = None,
                   help: str = "") -> str:
        ...

    def ask_multiple(self, question: str, options: Sequence[str], default: Sequence[str] = (),
                     validators: Sequence[Validator] = (), help: str = "") -> List[str]:
        ...


def _run_validators(value: Any, validators: Sequence[Validator]) -> None:
    for validator in validators:
        try:
            validator(value)
        except ValueError as e:
            raise InvalidResponse(f"[prompt.invalid]{e}") from e


class _ValidatedPrompt(Prompt):
    validators: Sequence[Validator] = ()
    required: bool = False

    def process_response(self, value: str) -> str:
        value = super().process_response(value).strip()
        if self.required and not value:
            raise InvalidResponse("[prompt.invalid]A value is required")
        if value:
            _run_validators(value, self.validators)
        return value


class _ValidatedIntPrompt(IntPrompt):
    validators: Sequence[Validator] = ()

    def process_response(self, value: str) -> int:
        number = super().process_response(value)
        _run_validators(number, self.validators)
        return number


class RichPrompter:
    """在终端里提问；Ctrl-C / EOF 视为中止"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _hint(self, help: str) -> None:
        if help:
            self.console.print(f"[dim]? {help}[/dim]")

    def ask_string(self, question: str, default: str = "", required: bool = False,
                   validators: Sequence[Validator] = (), help: str = "") -> str:
        self._hint(help)
        prompt = _ValidatedPrompt(question, console=self.console, show_default=bool(default))
        prompt.validators = validators
        prompt.required = required
        return self._ask(lambda: prompt(default=default))

    def ask_int(self, question: str, default: int = 0,
                validators: Sequence[Validator] = (), help: str = "") -> int:
        self._hint(help)
        prompt = _ValidatedIntPrompt(question, console=self.console)
        prompt.validators = validators
        return self._ask(lambda: prompt(default=default))

    def ask_bool(self, question: str, default: bool = False, help: str = "") -> bool:
        self._hint(help)
        return self._ask(lambda: Confirm.ask(question, default=default, console=self.console))

    def ask_option(self, question: str, options: Sequence[str], default: Optional[str] = None,
                   help: str = "") -> str:
        if not options:
            raise PromptAborted(f"No options available for '{question}'")
        self._hint(help)
        if default not in options:
            default = options[0]
        return self._ask(lambda: Prompt.ask(
            question, choices=list(options), default=default, console=self.console,
        ))

    def ask_multiple(self, question: str, options: Sequence[str], default: Sequence[str] = (),
                     validators: Sequence[Validator] = (), help: str = "") -> List[str]:
        self._hint(help)
        self.console.print(f"[dim]Options: {', '.join(options)}[/dim]")

        def check(value: Any) -> None:
            unknown = [item for item in _split(value) if item not in options]
            if unknown:
                raise ValueError(f"Unknown option(s): {', '.join(unknown)}")
            for validator in validators:
                validator(_split(value))

        answer = self.ask_string(question, default=",".join(default), validators=[check])
        return _split(answer)

    @staticmethod
    def _ask(fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (KeyboardInterrupt, EOFError):
            raise PromptAborted("Interactive input aborted") from None


def _split(value: Any) -> List[str]:
    return [item.strip() for item in str(value).split(",") if item.strip()]


__all__ = ["Prompter", "RichPrompter", "Validator"]
