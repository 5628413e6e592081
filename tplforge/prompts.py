"""Interactive prompts backed by rich."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar, Union

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from .models import Cancelled

T = TypeVar("T")

Validator = Callable[[str], Union[bool, str]]


@dataclass(frozen=True)
class Choice(Generic[T]):
    """A selectable option: ``title`` is shown, ``value`` is returned."""

    title: str
    value: T


class PromptService:
    """Asks the user for text, a choice, or a confirmation.

    Every method returns :class:`Cancelled` when the user aborts (Ctrl-C or
    end of input) so callers can tell it apart from an empty answer.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def ask_text(
        self,
        message: str,
        default: str = "",
        *,
        validate: Optional[Validator] = None,
    ) -> Union[str, Cancelled]:
        while True:
            try:
                answer = Prompt.ask(message, default=default, console=self.console)
            except (KeyboardInterrupt, EOFError):
                return Cancelled()
            answer = (answer or "").strip()
            if validate is None:
                return answer
            verdict = validate(answer)
            if verdict is True:
                return answer
            self.console.print(f"[red]{verdict or 'Invalid value'}[/red]")

    def ask_select(self, message: str, choices: Sequence[Choice[T]]) -> Union[T, Cancelled]:
        if not choices:
            return Cancelled("nothing to choose from")
        table = Table(show_header=False, box=None, pad_edge=False)
        for index, choice in enumerate(choices, start=1):
            table.add_row(f"[cyan]{index}[/cyan]", choice.title)
        self.console.print(table)
        try:
            picked = IntPrompt.ask(
                message,
                choices=[str(index) for index in range(1, len(choices) + 1)],
                default=1,
                show_choices=False,
                console=self.console,
            )
        except (KeyboardInterrupt, EOFError):
            return Cancelled()
        return choices[picked - 1].value

    def ask_confirm(self, message: str, default: bool = True) -> Union[bool, Cancelled]:
        try:
            return Confirm.ask(message, default=default, console=self.console)
        except (KeyboardInterrupt, EOFError):
            return Cancelled()


__all__ = ["Choice", "PromptService"]
