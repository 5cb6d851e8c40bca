"""Command-line interface for tlsmem (Click-based)."""

from __future__ import annotations

import click

from .list import list_cmd
from .plot import plot
from .run import run


@click.group(help="TLS library heap-memory benchmark harness")
def cli() -> None:
    """Top-level CLI group."""


cli.add_command(run, "run")
cli.add_command(plot, "plot")
cli.add_command(list_cmd, "list")


def main() -> None:
    """CLI entry point for console scripts."""
    cli()


__all__ = ["cli", "main"]
