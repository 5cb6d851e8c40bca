"""Profiler collaborator: run a command under valgrind's massif tool."""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence


@dataclass(frozen=True)
class ProfileResult:
    command: list[str]
    returncode: Optional[int]
    duration_s: float
    log_path: Path
    timed_out: bool = False


class MassifProfiler:
    """Launch ``argv`` under massif with the trace redirected to ``trace_path``."""

    tool_id = "massif"

    def __init__(
        self,
        valgrind: str = "valgrind",
        *,
        time_unit: str = "ms",
        extra_args: Sequence[str] = (),
    ) -> None:
        self.valgrind = valgrind
        self.time_unit = time_unit
        self.extra_args = tuple(extra_args)

    def command(self, argv: Sequence[str], trace_path: Path) -> list[str]:
        return [
            self.valgrind,
            "--tool=massif",
            f"--massif-out-file={Path(trace_path).absolute()}",
            f"--time-unit={self.time_unit}",
            *self.extra_args,
            "--",
            *argv,
        ]

    def profile(
        self,
        argv: Sequence[str],
        trace_path: Path,
        *,
        cwd: Path,
        log_path: Path,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProfileResult:
        """Block until the profiled process exits; the child is killed on timeout."""
        command = self.command(argv, trace_path)
        start = time.perf_counter()
        with log_path.open("w", encoding="utf-8") as log_file:
            try:
                result = subprocess.run(
                    command,
                    cwd=cwd,
                    env={**os.environ, **(env or {})},
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    text=True,
                    timeout=timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                return ProfileResult(
                    command=command,
                    returncode=None,
                    duration_s=time.perf_counter() - start,
                    log_path=log_path,
                    timed_out=True,
                )
        return ProfileResult(
            command=command,
            returncode=result.returncode,
            duration_s=time.perf_counter() - start,
            log_path=log_path,
        )


__all__ = ["MassifProfiler", "ProfileResult"]
