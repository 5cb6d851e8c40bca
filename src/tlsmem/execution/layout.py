"""On-disk layout of a benchmark session."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..core.errors import OutputCollisionError
from ..core.types import Candidate, Mode

TRACE_FILE = "massif.out"
RUN_LOG_FILE = "run.log"
COMPARISON_DIR = "comparison"


@dataclass(frozen=True)
class SessionLayout:
    """``<output_root>/<session_id>/<candidate>__<mode>/`` plus ``comparison/``."""

    output_root: Path
    session_id: str

    @property
    def session_dir(self) -> Path:
        return self.output_root / self.session_id

    @property
    def comparison_dir(self) -> Path:
        return self.session_dir / COMPARISON_DIR

    @property
    def summary_path(self) -> Path:
        return self.session_dir / "summary.json"

    @property
    def events_path(self) -> Path:
        return self.session_dir / "events.jsonl"

    @property
    def lock_path(self) -> Path:
        return self.output_root / ".tlsmem.lock"

    def run_dir(self, candidate: Candidate, mode: Mode) -> Path:
        return self.session_dir / f"{candidate.name}__{mode.slug}"

    def check_collisions(self, pairs: Iterable[tuple[Candidate, Mode]]) -> None:
        seen: dict[Path, tuple[str, str]] = {}
        for candidate, mode in pairs:
            path = self.run_dir(candidate, mode)
            if path in seen:
                raise OutputCollisionError(
                    f"{candidate.name}/{mode.name} and {'/'.join(seen[path])} share {path}"
                )
            seen[path] = (candidate.name, mode.name)
            _ensure_vacant(path)

    def create_run_dir(self, candidate: Candidate, mode: Mode) -> Path:
        path = self.run_dir(candidate, mode)
        _ensure_vacant(path)
        path.mkdir(parents=True, exist_ok=True)
        return path


def _ensure_vacant(path: Path) -> None:
    if path.exists() and any(path.iterdir()):
        raise OutputCollisionError(
            f"Run directory {path} already holds output; clean it or choose another session id"
        )


__all__ = ["COMPARISON_DIR", "RUN_LOG_FILE", "SessionLayout", "TRACE_FILE"]
