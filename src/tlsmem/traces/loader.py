"""Persisted sample loading for re-rendering finished sessions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Mapping, Sequence

from datasets import Dataset, DatasetDict, load_from_disk

from ..core.errors import TruncatedTraceWarning
from ..core.types import Sample, SampleSeries, SeriesSet

SUMMARY_FILE = "summary.json"
SAMPLES_DIR = "samples"


def load_samples(samples_dir: Path, warnings: Sequence[str] = ()) -> SampleSeries:
    """Load one Run's persisted samples dataset.

    Warnings are not part of the dataset; callers pass the ones recorded in
    the session summary.
    """

    data = load_from_disk(str(samples_dir))
    if isinstance(data, DatasetDict):
        if not data:
            raise RuntimeError(f"No splits found in dataset at {samples_dir!s}")
        dataset = next(iter(data.values()))
    else:
        dataset = data

    if not isinstance(dataset, Dataset):
        raise RuntimeError(f"Unsupported dataset object returned for {samples_dir!s}: {type(dataset)!r}")
    if len(dataset) == 0:
        raise RuntimeError(f"Empty dataset at {samples_dir!s}")

    time_unit = "i"
    samples = []
    sites = []
    for row in dataset:
        samples.append(Sample(elapsed=float(row["elapsed"]), heap_bytes=int(row["heap_bytes"])))
        sites.append(json.loads(row.get("sites") or "{}"))
        time_unit = str(row.get("time_unit") or time_unit)
    return SampleSeries(
        samples=tuple(samples),
        time_unit=time_unit,
        sites=tuple(sites),
        warnings=tuple(TruncatedTraceWarning(str(text)) for text in warnings),
    )


def load_summary(session_dir: Path) -> Mapping[str, object]:
    summary_path = session_dir / SUMMARY_FILE
    if not summary_path.exists():
        raise RuntimeError(f"No session summary at {summary_path}")
    with summary_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def load_session_series(session_dir: Path) -> Dict[str, SeriesSet]:
    """Rebuild one SeriesSet per mode from a finished session directory."""

    summary = load_summary(session_dir)
    grouped: Dict[str, Dict[str, SampleSeries]] = {}
    for entry in summary.get("runs", []):
        if not isinstance(entry, Mapping):
            continue
        samples_path = entry.get("samples")
        if not samples_path:
            continue
        path = Path(str(samples_path))
        if not path.is_absolute():
            path = session_dir / path
        if not path.exists():
            continue
        mode = str(entry["mode"])
        grouped.setdefault(mode, {})[str(entry["candidate"])] = load_samples(
            path, warnings=entry.get("warnings") or ()
        )
    return {mode: SeriesSet(mode=mode, series=series) for mode, series in grouped.items()}


__all__ = ["load_samples", "load_session_series", "load_summary"]
