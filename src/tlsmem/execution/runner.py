"""Profiling orchestrator: drive the workload under massif for every (candidate, mode)."""

from __future__ import annotations

import logging
import shutil
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Protocol, Sequence

from ..core.errors import BuildError, RunFailed
from ..core.types import Candidate, Mode, Run, RunStatus, TraceHandle
from ..workload.driver import WorkloadDriver
from .layout import RUN_LOG_FILE, TRACE_FILE, SessionLayout
from .profiler import MassifProfiler

logger = logging.getLogger("tlsmem.execution.runner")


class Configurer(Protocol):
    def configure(self, candidate: Candidate, provider: str | None = None) -> Path: ...


class ProfilingOrchestrator:
    """Coordinate backend preparation, profiled execution and run bookkeeping.

    Runs are produced in candidate-major order and always number
    ``len(candidates) * len(modes)``. Failures local to one pair are recorded
    on its Run; only session-level errors (e.g. ``OutputCollisionError``)
    propagate.
    """

    def __init__(
        self,
        selector: Configurer,
        profiler: MassifProfiler,
        layout: SessionLayout,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        parallelism: int = 1,
    ) -> None:
        self._selector = selector
        self._profiler = profiler
        self._layout = layout
        self._provider = provider
        self._timeout = timeout
        self._parallelism = max(1, parallelism)

    def run_all(self, candidates: Sequence[Candidate], modes: Sequence[Mode]) -> list[Run]:
        if self._parallelism == 1:
            runs: list[Run] = []
            for candidate in candidates:
                artifact, build_error = self._prepare(candidate)
                for mode in modes:
                    runs.append(self._run_one(candidate, mode, artifact, build_error))
            return runs

        # Every backend is configured before any Run starts so concurrent
        # Runs never race the manifest overlay.
        prepared = {candidate.name: self._prepare(candidate) for candidate in candidates}
        with ThreadPoolExecutor(max_workers=self._parallelism) as pool:
            futures = [
                pool.submit(self._run_one, candidate, mode, *prepared[candidate.name])
                for candidate in candidates
                for mode in modes
            ]
            return [future.result() for future in futures]

    def _prepare(self, candidate: Candidate) -> tuple[Optional[Path], Optional[BuildError]]:
        try:
            return self._selector.configure(candidate, self._provider), None
        except BuildError as exc:
            logger.error("[BUILD FAILED] %s: %s", candidate.name, exc)
            if exc.log:
                logger.debug("Build log for %s:\n%s", candidate.name, exc.log.rstrip())
            return None, exc

    def _run_one(
        self,
        candidate: Candidate,
        mode: Mode,
        artifact: Optional[Path],
        build_error: Optional[BuildError],
    ) -> Run:
        run_dir = self._layout.run_dir(candidate, mode).absolute()
        if artifact is None:
            error = RunFailed(candidate.name, mode.name, "build")
            error.__cause__ = build_error
            return Run(
                candidate=candidate.name,
                mode=mode.name,
                run_dir=run_dir,
                status=RunStatus.BUILD_FAILED,
                started_at=time.time(),
                error=error,
            )

        run_dir = self._layout.create_run_dir(candidate, mode).absolute()
        trace_path = run_dir / TRACE_FILE
        driver = WorkloadDriver(artifact)
        started_at = time.time()
        logger.info("Profiling %s (%s) -> %s", candidate.name, mode.name, run_dir)

        result = self._profiler.profile(
            driver.argv(candidate, mode),
            trace_path,
            cwd=run_dir,
            log_path=run_dir / RUN_LOG_FILE,
            timeout=self._timeout,
        )

        if result.timed_out:
            logger.error(
                "[TIMEOUT] %s (%s) after %.1fs; removing %s",
                candidate.name,
                mode.name,
                result.duration_s,
                run_dir,
            )
            shutil.rmtree(run_dir, ignore_errors=True)
            return Run(
                candidate=candidate.name,
                mode=mode.name,
                run_dir=run_dir,
                status=RunStatus.TIMED_OUT,
                started_at=started_at,
                duration_s=result.duration_s,
                error=RunFailed(candidate.name, mode.name, "timeout"),
            )

        trace = TraceHandle(
            path=trace_path, snapshot_dir=driver.snapshot_dir(run_dir, candidate, mode)
        )
        if result.returncode != 0:
            logger.error(
                "[FAILED] %s (%s) exit code %s; see %s",
                candidate.name,
                mode.name,
                result.returncode,
                result.log_path,
            )
            return Run(
                candidate=candidate.name,
                mode=mode.name,
                run_dir=run_dir,
                status=RunStatus.FAILED,
                started_at=started_at,
                duration_s=result.duration_s,
                exit_code=result.returncode,
                trace=trace,
                log_path=result.log_path,
                error=RunFailed(candidate.name, mode.name, result.returncode),
            )

        logger.info("[COMPLETED] %s (%s) in %.1fs", candidate.name, mode.name, result.duration_s)
        return Run(
            candidate=candidate.name,
            mode=mode.name,
            run_dir=run_dir,
            status=RunStatus.SUCCEEDED,
            started_at=started_at,
            duration_s=result.duration_s,
            exit_code=0,
            trace=trace,
            log_path=result.log_path,
        )


__all__ = ["ProfilingOrchestrator"]
