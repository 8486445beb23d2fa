"""Console rendering of transient session messages."""

from typing import Protocol

import questionary
from rich.console import Console

from .messages import CONFIRM_DISCARD

console = Console(stderr=True)

select_style = questionary.Style(
    [
        ("qmark", "fg:#5f87af bold"),
        ("question", "bold"),
        ("answer", "fg:#5f87af bold"),
    ]
)


class MessageSink(Protocol):
    """Receives the transient messages a session shows to the user."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


def success(message: str) -> None:
    """Display success message."""
    console.print(f"[green]✓[/green] {message}")


def error(message: str) -> None:
    """Display error message."""
    console.print(f"[red]✗[/red] {message}")


def info(message: str) -> None:
    """Display info message."""
    console.print(f"[blue]i[/blue] {message}")


def warning(message: str) -> None:
    """Display warning message."""
    console.print(f"[yellow]![/yellow] {message}")


class ConsoleMessages:
    """Message sink printing to the rich console."""

    def success(self, message: str) -> None:
        success(message)

    def error(self, message: str) -> None:
        error(message)

    def info(self, message: str) -> None:
        info(message)

    def warning(self, message: str) -> None:
        warning(message)


def confirm(message: str, default: bool = False) -> bool:
    """Ask for confirmation."""
    result = questionary.confirm(message, default=default, style=select_style).ask()
    return result if result is not None else False


def confirm_discard() -> bool:
    """Ask whether unsaved entry changes may be thrown away."""
    return confirm(CONFIRM_DISCARD)


def confirm_overwrite(question: str) -> bool:
    return confirm(question)
