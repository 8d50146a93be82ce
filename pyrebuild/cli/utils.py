"""Reporting for CLI commands: rich text for people, one JSON document for scripts.

Commands build an `Output`, feed it messages and data, and end with
`raise typer.Exit(out.finish())`. In `--json` mode nothing is printed until
`finish()`, which writes a single document:

    {"status": "error", "warnings": [], "errors": [{"message": "...",
     "category": "ManifestMissing"}], "exit_code": 1}
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, PrivateAttr
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import (
    CommandError,
    GenerationError,
    RebuildError,
)


class ExitCode:
    """Process exit statuses.

        0 = Success
        1 = The flake reference could not be resolved
        3 = Profile directory missing or unreadable
        4 = nix build failed
        5 = switch-to-configuration failed
        6 = Refused to run as root
    """

    SUCCESS = 0
    RESOLUTION_ERROR = 1
    FILE_NOT_FOUND = 3
    BUILD_ERROR = 4
    ACTIVATION_ERROR = 5
    PERMISSION_ERROR = 6


def exit_code_for(error: RebuildError) -> int:
    if isinstance(error, GenerationError):
        return ExitCode.FILE_NOT_FOUND
    if isinstance(error, CommandError):
        return ExitCode.BUILD_ERROR
    return ExitCode.RESOLUTION_ERROR


class Output(BaseModel):
    """Collects what a command has to say and how it ended."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _document: dict[str, Any] = PrivateAttr(default_factory=dict)
    _exit_code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def model_post_init(self, __context: Any) -> None:
        self._document = {"status": "success", "warnings": [], "errors": []}

    @staticmethod
    def _entry(message: str, **extra: str | None) -> dict[str, str]:
        entry = {"message": message}
        entry.update({k: v for k, v in extra.items() if v})
        return entry

    def _hint(self, suggestion: str | None) -> None:
        if suggestion:
            self.console.print(f"  [dim]→ {escape(suggestion)}[/dim]")

    def success(self, message: str) -> None:
        if not self.json_mode:
            self.console.print(f"[green]✓[/green] {escape(message)}")

    def warning(self, message: str, *, suggestion: str | None = None) -> None:
        if self.json_mode:
            self._document["warnings"].append(self._entry(message, suggestion=suggestion))
            return
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}")
        self._hint(suggestion)

    def error(
        self,
        message: str,
        *,
        category: str | None = None,
        suggestion: str | None = None,
        exit_code: int = ExitCode.RESOLUTION_ERROR,
    ) -> None:
        """Record a failure; the last one reported decides the exit code."""
        self._document["status"] = "error"
        self._exit_code = exit_code
        if self.json_mode:
            self._document["errors"].append(
                self._entry(message, category=category, suggestion=suggestion)
            )
            return
        prefix = f"[red]✗ {escape(category)}:[/red]" if category else "[red]✗[/red]"
        self.console.print(f"{prefix} {escape(message)}")
        self._hint(suggestion)

    def fail(self, error: RebuildError, *, exit_code: int | None = None) -> None:
        """Report a pyrebuild error under its own `kind`."""
        self.error(
            str(error),
            category=error.kind,
            exit_code=exit_code_for(error) if exit_code is None else exit_code,
        )

    def text(self, message: str, *, soft_wrap: bool = False) -> None:
        if not self.json_mode:
            self.console.print(message, soft_wrap=soft_wrap)

    def blank(self) -> None:
        if not self.json_mode:
            self.console.print()

    def table(self, title: str, columns: list[str], rows: list[list[str]]) -> None:
        """Render rows as a rich table (human mode only).

        JSON callers put the structured form in the document with set_data.
        """
        if self.json_mode:
            return
        table = Table(title=title, header_style="bold")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(escape(cell) for cell in row))
        self.console.print(table)

    def set_data(self, key: str, value: Any) -> None:
        self._document[key] = value

    def finish(self) -> int:
        """Print the JSON document (json mode) and return the exit code."""
        if self.json_mode:
            self._document["exit_code"] = self._exit_code
            print(json.dumps(self._document, indent=2, default=str))
        return self._exit_code
