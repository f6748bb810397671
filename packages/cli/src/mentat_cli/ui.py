"""Terminal interaction: prompts (click) and output (rich).

Both objects are created once per session and passed to every component
that talks to the operator. Nothing in the workflow prints or prompts
directly.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

import click
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

_SEVERITY_STYLE = {"risk": "bold red", "issue": "red", "suggestion": "yellow", "nit": "dim"}


class _Cancelled:
    """Returned by a prompt when the operator pressed Ctrl-C or closed stdin."""

    def __repr__(self) -> str:
        return "CANCELLED"

    def __bool__(self) -> bool:
        return False


CANCELLED = _Cancelled()


@dataclass
class Choice:
    value: Any
    label: str
    hint: str | None = None
    recommended: bool = False


class Prompter:
    def __init__(self, console: Console):
        self.console = console

    def select(self, message: str, options: list):
        """Numbered single-choice menu. ``options`` need ``value`` and ``label``; ``hint`` and
        ``recommended`` are shown when present. The first recommended option is the default."""
        self.console.print(f"\n[bold]{message}[/bold]")
        default = next((i for i, o in enumerate(options, 1) if getattr(o, "recommended", False)), 1)
        for i, option in enumerate(options, 1):
            hint = getattr(option, "hint", None)
            recommended = getattr(option, "recommended", False)
            line = f"  [bold]{i}[/bold]. {option.label}"
            if recommended:
                line += " [green](recommended)[/green]"
            if hint:
                line += f" [dim]- {hint}[/dim]"
            self.console.print(line, highlight=False)
        try:
            index = click.prompt("Choose", type=click.IntRange(1, len(options)), default=default)
        except click.Abort:
            return CANCELLED
        return options[index - 1].value

    def confirm(self, message: str, default: bool = True):
        try:
            return click.confirm(message, default=default)
        except click.Abort:
            return CANCELLED

    def text(self, message: str, default: str = ""):
        try:
            return click.prompt(message, default=default, show_default=False)
        except click.Abort:
            return CANCELLED


class Presenter:
    def __init__(self, console: Console):
        self.console = console

    def section(self, title: str) -> None:
        self.console.rule(f"[bold cyan]{title}[/bold cyan]")

    def section_complete(self, message: str) -> None:
        self.console.print(f"[bold green]◆ {message}[/bold green]")

    def info(self, message: str) -> None:
        self.console.print(message, highlight=False)

    def step(self, message: str) -> None:
        self.console.print(f"  [dim]│[/dim] {message}", highlight=False)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗ {message}[/red]")

    @contextmanager
    def status(self, message: str) -> Iterator:
        with self.console.status(message) as status:
            yield status

    def render_comment(self, comment, index: int | None = None, total: int | None = None) -> None:
        """Show a stored comment with its code snippet."""
        style = _SEVERITY_STYLE.get(comment.severity, "yellow")
        title = f"[{style}]{comment.severity.upper()}[/{style}] {comment.location()}"
        if index is not None and total is not None:
            title = f"Comment {index}/{total}: {title}"
        body = comment.message
        if comment.rationale:
            body += f"\n\n[dim]Why:[/dim] {comment.rationale}"
        if comment.confidence:
            body += f"\n[dim]Confidence: {comment.confidence}[/dim]"
        self.console.print(Panel(body, title=title, title_align="left"))
        if comment.code_snippet:
            first_line = comment.start_line if comment.is_range else (comment.line or 1)
            self.console.print(
                Syntax(
                    comment.code_snippet,
                    _lexer_for(comment.file),
                    line_numbers=True,
                    start_line=first_line,
                )
            )


def _lexer_for(path: str) -> str:
    suffix = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return {
        "py": "python",
        "js": "javascript",
        "ts": "typescript",
        "tsx": "tsx",
        "go": "go",
        "rs": "rust",
        "java": "java",
        "rb": "ruby",
        "yml": "yaml",
        "yaml": "yaml",
        "json": "json",
        "sh": "bash",
    }.get(suffix, "text")
