"""Workload driver contract and workload modes."""

from .driver import WorkloadDriver
from .modes import BUILTIN_MODES, ensure_registered, parse_mode

__all__ = ["BUILTIN_MODES", "WorkloadDriver", "ensure_registered", "parse_mode"]
