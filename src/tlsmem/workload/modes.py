"""Built-in workload modes and parsing of ad-hoc ``name:flag,flag`` modes."""

from __future__ import annotations

from ..core.errors import ConfigurationError
from ..core.registry import ModeRegistry
from ..core.types import Mode

BUILTIN_MODES = (
    Mode("default", (), "Driver defaults (pair mode)"),
    Mode("pair", ("pair",), "Keep both connection halves alive"),
    Mode("client", ("client",), "Keep only the client half of each connection alive"),
    Mode("server", ("server",), "Keep only the server half of each connection alive"),
)


def ensure_registered() -> None:
    """Populate the mode registry with the built-in modes."""
    registered = {key for key, _ in ModeRegistry.items()}
    for mode in BUILTIN_MODES:
        if mode.name not in registered:
            ModeRegistry.register_value(mode.name, mode)


def parse_mode(spec: str) -> Mode:
    """Resolve ``name`` from the registry, or build a mode from ``name:flag,flag``."""
    spec = spec.strip()
    name, sep, raw_flags = spec.partition(":")
    name = name.strip()
    if not name:
        raise ConfigurationError(f"Invalid mode '{spec}': missing name")
    if sep:
        flags = tuple(flag.strip() for flag in raw_flags.split(",") if flag.strip())
        return Mode(name=name, flags=flags, description="ad hoc")
    try:
        return ModeRegistry.get(name)
    except KeyError as exc:
        available = ", ".join(key for key, _ in ModeRegistry.items())
        raise ConfigurationError(f"Unknown mode '{name}'. Available modes: {available}") from exc


__all__ = ["BUILTIN_MODES", "ensure_registered", "parse_mode"]
