"""End-to-end benchmark session: select, profile, extract, render."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Sequence

from ..backends import BackendSelector, CargoBuilder, GitFetcher, ManifestOverlay
from ..backends import ensure_registered as ensure_candidates_registered
from ..core.errors import UnparseableTraceError
from ..core.types import Mode, Run, RunReport, SeriesSet, SessionConfig
from ..traces.massif import extract, snapshot_files
from ..visualization import CropRegion, export_chart
from ..workload.driver import WorkloadDriver
from ..workload.modes import ensure_registered as ensure_modes_registered
from .layout import SessionLayout
from .lock import SessionLock
from .profiler import MassifProfiler
from .resolution import ensure_collaborators, resolve_candidates, resolve_modes
from .runner import ProfilingOrchestrator
from .sink import JsonlResultSink, SampleSink, run_event, write_summary

logger = logging.getLogger("tlsmem.execution.session")

MANIFEST_FILE = "Cargo.toml"
CACHE_DIRNAME = ".tlsmem-cache"
LOCK_FILE = ".tlsmem.lock"


def default_session_id() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


@dataclass(slots=True)
class SessionReport:
    session_dir: Path
    reports: list[RunReport]
    comparisons: Dict[str, Dict[str, Path]] = field(default_factory=dict)
    render_errors: Dict[str, str] = field(default_factory=dict)
    summary_path: Optional[Path] = None

    @property
    def failed(self) -> list[RunReport]:
        return [report for report in self.reports if not report.ok]

    @property
    def exit_code(self) -> int:
        return 0 if not self.failed and not self.render_errors else 1


class BenchmarkSession:
    """Run the full Candidates x Modes matrix for one invocation.

    ``builder``, ``fetcher`` and ``profiler`` default to the cargo, git and
    valgrind collaborators; ``check_tools=False`` skips the ``PATH`` lookup
    for them.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        builder: Optional[CargoBuilder] = None,
        fetcher: Optional[GitFetcher] = None,
        profiler: Optional[MassifProfiler] = None,
        check_tools: bool = True,
    ) -> None:
        self.config = config
        self.session_id = config.session_id or default_session_id()
        self.workload_dir = Path(config.workload_dir).absolute()
        self.cache_dir = Path(config.cache_dir or self.workload_dir / CACHE_DIRNAME).absolute()
        self.layout = SessionLayout(Path(config.output_root).absolute(), self.session_id)
        self.crop_region = CropRegion(*config.crop) if config.crop else None
        self._builder = builder or CargoBuilder(
            self.workload_dir, self.cache_dir, binary=config.driver_binary
        )
        self._fetcher = fetcher or GitFetcher(self.cache_dir)
        self._profiler = profiler or MassifProfiler(
            config.valgrind, extra_args=config.massif_args
        )
        self._check_tools = check_tools
        self._sample_sink = SampleSink()

    def run(self) -> SessionReport:
        """Execute the session.

        Configuration, collision and lock errors are raised before the
        manifest is touched. ``ManifestRestoreError`` propagates after the
        runs.
        """
        ensure_candidates_registered()
        ensure_modes_registered()
        config = self.config
        candidates = resolve_candidates(config.candidates)
        modes = resolve_modes(config.modes)

        overlay = ManifestOverlay(self.workload_dir / MANIFEST_FILE)
        selector = BackendSelector(
            overlay,
            self._fetcher,
            self._builder,
            self.cache_dir,
            native_prefix=config.native_prefix,
        )
        needs_fetch = False
        for candidate in candidates:
            binding = selector.validate(candidate, config.provider)
            needs_fetch = needs_fetch or bool(binding.sources)
        if self._check_tools:
            tools = [self._builder.cargo, self._profiler.valgrind]
            if needs_fetch:
                tools.append(self._fetcher.git)
            ensure_collaborators(tools)

        with SessionLock(self.layout.lock_path), SessionLock(self.workload_dir / LOCK_FILE):
            self.layout.check_collisions((c, m) for c in candidates for m in modes)
            self.layout.session_dir.mkdir(parents=True, exist_ok=True)
            logger.info(
                "Session %s: %d candidate(s) x %d mode(s) -> %s",
                self.session_id,
                len(candidates),
                len(modes),
                self.layout.session_dir,
            )
            orchestrator = ProfilingOrchestrator(
                selector,
                self._profiler,
                self.layout,
                provider=config.provider,
                timeout=config.timeout,
                parallelism=config.parallelism,
            )
            with overlay:
                runs = orchestrator.run_all(candidates, modes)

            events = JsonlResultSink(self.layout.events_path)
            try:
                render_errors: Dict[str, str] = {}
                reports = [self._collect(run, render_errors) for run in runs]
                report = SessionReport(
                    session_dir=self.layout.session_dir,
                    reports=reports,
                    render_errors=render_errors,
                )
                self._render_comparisons(report, modes)
                events.extend(run_event(entry) for entry in reports)
                events.append(
                    {
                        "event": "session",
                        "session_id": self.session_id,
                        "finished_at": time.time(),
                        "failed": len(report.failed),
                        "render_errors": report.render_errors,
                    }
                )
            finally:
                events.close()

            report.summary_path = write_summary(
                self.layout.summary_path,
                session_id=self.session_id,
                provider=config.provider,
                reports=report.reports,
                comparisons=report.comparisons,
                render_errors=report.render_errors,
            )
        return report

    def _collect(self, run: Run, render_errors: Dict[str, str]) -> RunReport:
        report = RunReport(run=run)
        if not run.status.ok or run.trace is None:
            return report
        try:
            series = extract(run.trace, prefixes=self.config.label_prefixes)
        except UnparseableTraceError as exc:
            logger.error("[UNPARSEABLE] %s (%s): %s", run.candidate, run.mode, exc)
            report.error = exc
            return report

        report.series = series
        report.warnings.extend(str(warning) for warning in series.warnings)
        report.artifacts["samples"] = self._sample_sink.save(series, run.run_dir)
        for xtree in WorkloadDriver.xtree_files(run.run_dir):
            report.artifacts[f"xtree:{xtree.stem}"] = xtree
        if not self.config.keep_traces:
            _discard_traces(run)

        try:
            report.artifacts.update(
                export_chart(
                    SeriesSet(mode=run.mode, series={run.candidate: series}),
                    run.run_dir / "chart.svg",
                    crop_region=self.crop_region,
                    title=f"{run.candidate} heap usage ({run.mode})",
                )
            )
        except (ValueError, OSError) as exc:
            logger.error("Failed to render chart for %s (%s): %s", run.candidate, run.mode, exc)
            render_errors[f"{run.candidate}/{run.mode}"] = str(exc)
        return report

    def _render_comparisons(self, report: SessionReport, modes: Sequence[Mode]) -> None:
        for mode in modes:
            series_set = SeriesSet.from_reports(
                mode.name, [entry for entry in report.reports if entry.run.mode == mode.name]
            )
            if not series_set.series:
                logger.warning("No usable samples for mode '%s'; skipping comparison", mode.name)
                continue
            try:
                report.comparisons[mode.name] = export_chart(
                    series_set,
                    self.layout.comparison_dir / f"{mode.slug}.svg",
                    crop_region=self.crop_region,
                )
            except (ValueError, OSError) as exc:
                logger.error("Failed to render comparison for mode '%s': %s", mode.name, exc)
                report.render_errors[mode.name] = str(exc)
            else:
                logger.info("Comparison chart for '%s': %s", mode.name, report.comparisons[mode.name]["svg"])


def _discard_traces(run: Run) -> None:
    trace = run.trace
    if trace is None:
        return
    paths = [trace.path]
    if trace.snapshot_dir is not None:
        paths.extend(snapshot_files(trace.snapshot_dir))
    for path in paths:
        path.unlink(missing_ok=True)


__all__ = ["BenchmarkSession", "SessionReport", "default_session_id"]
