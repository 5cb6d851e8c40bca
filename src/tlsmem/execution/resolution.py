"""Helpers to resolve registered candidates and modes from identifiers."""

from __future__ import annotations

import shutil
from typing import Iterable, Sequence

from ..core.errors import ConfigurationError
from ..core.registry import CandidateRegistry
from ..core.types import Candidate, Mode
from ..workload.modes import parse_mode


def resolve_candidates(names: Sequence[str]) -> list[Candidate]:
    if not names:
        raise ConfigurationError("At least one candidate is required")
    resolved: list[Candidate] = []
    for name in dict.fromkeys(names):
        try:
            resolved.append(CandidateRegistry.get(name))
        except KeyError as exc:
            available = ", ".join(key for key, _ in CandidateRegistry.items())
            raise ConfigurationError(
                f"Unknown candidate '{name}'. Available candidates: {available}"
            ) from exc
    return resolved


def resolve_modes(specs: Sequence[str]) -> list[Mode]:
    if not specs:
        raise ConfigurationError("At least one mode is required")
    modes: list[Mode] = []
    seen: set[str] = set()
    for spec in specs:
        mode = parse_mode(spec)
        if mode.name in seen:
            continue
        seen.add(mode.name)
        modes.append(mode)
    return modes


def ensure_collaborators(binaries: Iterable[str]) -> None:
    """Fail before any Run when a collaborator binary is not on ``PATH``."""
    missing = [binary for binary in binaries if shutil.which(binary) is None]
    if missing:
        raise ConfigurationError(
            f"Required tool(s) not found on PATH: {', '.join(missing)}"
        )


__all__ = ["ensure_collaborators", "resolve_candidates", "resolve_modes"]
