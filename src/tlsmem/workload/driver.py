"""Command contract for the workload driver binary.

The driver is ``<artifact> <candidate> [mode flags...]``. It handshakes a
batch of connections and asks massif for a snapshot after each one, writing
``target/memory/<candidate>[_client|_server]/<n>.snapshot`` relative to its
working directory. Allocation trees (``xtmemory``) go to
``target/memory/xtree/*.out``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..core.types import Candidate, Mode

MEMORY_DIR = Path("target") / "memory"
XTREE_DIR = MEMORY_DIR / "xtree"

_ROLE_FLAGS = ("client", "server")


@dataclass(slots=True, frozen=True)
class WorkloadDriver:
    artifact: Path

    def argv(self, candidate: Candidate, mode: Mode) -> list[str]:
        return [str(Path(self.artifact).absolute()), candidate.name, *mode.flags]

    @staticmethod
    def snapshot_dir(run_dir: Path, candidate: Candidate | str, mode: Mode) -> Path:
        """Where the driver writes ``<n>.snapshot`` files when run from ``run_dir``."""
        name = candidate if isinstance(candidate, str) else candidate.name
        role = next((flag for flag in mode.flags if flag.lower() in _ROLE_FLAGS), None)
        dirname = f"{name}_{role.lower()}" if role else name
        return run_dir / MEMORY_DIR / dirname

    @staticmethod
    def xtree_files(run_dir: Path) -> list[Path]:
        directory = run_dir / XTREE_DIR
        if not directory.is_dir():
            return []
        return sorted(path for path in directory.glob("*.out") if path.is_file())


__all__ = ["MEMORY_DIR", "WorkloadDriver", "XTREE_DIR"]
