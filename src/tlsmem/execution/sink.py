"""Result sinks for benchmark sessions."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from datasets import Dataset

from ..core.types import RunReport, SampleSeries
from ..traces.loader import SAMPLES_DIR


class ResultSink:
    """Abstract append-only sink for session events."""

    def append(self, event: Mapping[str, object]) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


@dataclass
class JsonlResultSink(ResultSink):
    """Simple JSONLines sink writing one event per line."""

    path: Path

    def __post_init__(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", encoding="utf-8")

    def append(self, event: Mapping[str, object]) -> None:
        json.dump(event, self._handle, ensure_ascii=False, default=str)
        self._handle.write("\n")
        self._handle.flush()

    def extend(self, events: Iterable[Mapping[str, object]]) -> None:
        for event in events:
            self.append(event)

    def close(self) -> None:
        self._handle.close()


class SampleSink:
    """Persist each Run's SampleSeries as a ``datasets`` table, one row per sample."""

    def __init__(self, dirname: str = SAMPLES_DIR) -> None:
        self.dirname = dirname

    def save(self, series: SampleSeries, run_dir: Path) -> Path:
        rows = []
        for index, sample in enumerate(series.samples):
            sites = series.sites[index] if index < len(series.sites) else {}
            rows.append(
                {
                    "elapsed": float(sample.elapsed),
                    "heap_bytes": int(sample.heap_bytes),
                    "time_unit": series.time_unit,
                    "sites": json.dumps(dict(sites), sort_keys=True),
                }
            )
        samples_dir = run_dir / self.dirname
        dataset_obj = Dataset.from_list(rows)
        dataset_obj.save_to_disk(str(samples_dir))
        return samples_dir


def run_event(report: RunReport) -> dict[str, object]:
    run = report.run
    return {
        "event": "run",
        "candidate": run.candidate,
        "mode": run.mode,
        "status": report.status.value,
        "exit_code": run.exit_code,
        "duration_s": round(run.duration_s, 3),
        "error": str(report.error or run.error or "") or None,
        "warnings": list(report.warnings),
    }


def write_summary(
    path: Path,
    *,
    session_id: str,
    provider: str,
    reports: Sequence[RunReport],
    comparisons: Mapping[str, Mapping[str, Path]],
    render_errors: Mapping[str, str],
) -> Path:
    """Write the session summary; artifact paths are stored relative to the session directory."""

    session_dir = path.parent

    def _rel(value: Path) -> str:
        try:
            return str(Path(value).relative_to(session_dir))
        except ValueError:
            return str(value)

    runs = []
    for report in reports:
        entry = run_event(report)
        entry.pop("event")
        samples = report.artifacts.get("samples")
        entry["samples"] = _rel(samples) if samples else None
        entry["peak_bytes"] = report.series.peak_bytes if report.series is not None else None
        entry["artifacts"] = {
            name: _rel(value) for name, value in report.artifacts.items() if name != "samples"
        }
        runs.append(entry)

    summary = {
        "session_id": session_id,
        "provider": provider,
        "runs": runs,
        "comparisons": {
            mode: {kind: _rel(value) for kind, value in artifacts.items()}
            for mode, artifacts in comparisons.items()
        },
        "render_errors": dict(render_errors),
    }
    path.write_text(json.dumps(summary, indent=2))
    return path


__all__ = ["JsonlResultSink", "ResultSink", "SampleSink", "run_event", "write_summary"]
