"""Rich console helpers shared by CLI commands."""

from __future__ import annotations

from typing import Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "info": "blue",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
    }
)

console = Console(theme=_THEME, highlight=False)
err_console = Console(theme=_THEME, highlight=False, stderr=True)


def info(message: str) -> None:
    console.print(message, style="info", markup=False)


def success(message: str) -> None:
    console.print(message, style="success", markup=False)


def warning(message: str) -> None:
    err_console.print(message, style="warning", markup=False)


def error(message: str) -> None:
    err_console.print(message, style="error", markup=False)


def table(headers: Sequence[str], rows: Sequence[Sequence[str]], *, title: str = "") -> None:
    grid = Table(title=title or None, box=box.SIMPLE, show_edge=False, pad_edge=True)
    for header in headers:
        grid.add_column(header)
    for row in rows:
        grid.add_row(*row)
    console.print(grid)


__all__ = ["console", "err_console", "error", "info", "success", "table", "warning"]
