"""Interactive prompts for the CLI, rendered with :mod:`rich.prompt`."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt

Validator = Callable[[str], Optional[str]]

console = Console()


def ask(message: str, default: str = "", validate: Optional[Validator] = None) -> str:
    """Prompt until ``validate`` returns no error; empty input takes ``default``."""
    while True:
        answer = Prompt.ask(message, default=default or ..., show_default=bool(default), console=console)
        answer = (answer or "").strip() or default
        error = validate(answer) if validate else None
        if error is None:
            return answer
        console.print(error, style="red", markup=False)


def confirm(message: str, default: bool = False) -> bool:
    return Confirm.ask(message, default=default, console=console)


def choose(message: str, choices: Sequence[str], default: Optional[str] = None) -> str:
    return Prompt.ask(message, choices=list(choices), default=default or ..., console=console)
