"""List registered components (candidates and modes)."""

from __future__ import annotations

import click

from ..backends import ensure_registered as ensure_candidates_registered
from ..core.registry import CandidateRegistry, ModeRegistry
from ..workload import ensure_registered as ensure_modes_registered
from ._console import error, info


@click.group(help="List available components")
def list_cmd() -> None:
    """List available components in the registry."""
    ensure_candidates_registered()
    ensure_modes_registered()


@list_cmd.command("candidates", help="List candidate TLS libraries")
def list_candidates() -> None:
    """List all registered candidates with their crypto providers."""
    items = CandidateRegistry.items()

    if not items:
        error("No candidates registered")
        return

    info("Candidates:")
    for name, candidate in items:
        providers = ", ".join(
            f"{provider}*" if provider == candidate.default_provider else provider
            for provider in candidate.bindings
        )
        info(f"  {name:12} crate={candidate.crate:12} providers: {providers}")


@list_cmd.command("modes", help="List workload modes")
def list_modes() -> None:
    """List all registered workload modes."""
    items = ModeRegistry.items()

    if not items:
        error("No modes registered")
        return

    info("Modes:")
    for name, mode in items:
        flags = " ".join(mode.flags) or "-"
        info(f"  {name:10} flags: {flags:10} {mode.description}")


@list_cmd.command("all", help="List all available components")
def list_all() -> None:
    """List all registered components (candidates and modes)."""
    ctx = click.get_current_context()

    ctx.invoke(list_candidates)
    info("")
    ctx.invoke(list_modes)


__all__ = ["list_cmd"]
