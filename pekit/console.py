"""
PETable Console
================

Thin wrapper over two :class:`rich.console.Console` objects: listings and
tables go to stdout, error messages to stderr.  Text taken from the image
under analysis (library and function names) is escaped before it reaches
Rich, so a name such as ``[bold]`` prints literally.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

_PETABLE_THEME = Theme(
    {
        "petable.section": "bold bright_magenta",
        "petable.success": "bold green",
        "petable.error": "bold red",
        "petable.dim": "dim white",
    }
)


class PETableConsole:
    """Stdout / stderr console pair used by the CLI and the ``--rich`` views."""

    def __init__(self) -> None:
        self._console = Console(theme=_PETABLE_THEME, highlight=False)
        self._err_console = Console(theme=_PETABLE_THEME, stderr=True, highlight=False)

    @property
    def rich(self) -> Console:
        """The stdout Rich console."""
        return self._console

    def section(self, title: str) -> None:
        """Print a rule with *title* followed by a blank line."""
        self._console.rule(f"  {escape(title)}  ", style="petable.section", characters="─")
        self._console.print()

    def error(self, message: str) -> None:
        """Print *message* to stderr as an error."""
        self._err_console.print(
            f"[petable.error][✘] ERROR:[/petable.error] {escape(message)}"
        )

    def table(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render *rows* under *columns*; every cell is stringified and escaped."""
        tbl = Table(
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            padding=(0, 1),
        )
        for idx, name in enumerate(columns):
            tbl.add_column(name, style=styles[idx] if styles and idx < len(styles) else "")
        for row in rows:
            tbl.add_row(*(escape(str(cell)) for cell in row))
        self._console.print(tbl)

    def print(self, *args: Any, **kwargs: Any) -> None:
        self._console.print(*args, **kwargs)

    def blank(self) -> None:
        self._console.print()
