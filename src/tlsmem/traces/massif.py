"""Extract heap samples from massif output.

A massif file is a header (``desc:``, ``cmd:``, ``time_unit:``) followed by
snapshot records::

    #-----------
    snapshot=3
    #-----------
    time=120
    mem_heap_B=40960
    mem_heap_extra_B=512
    mem_stacks_B=0
    heap_tree=detailed
    n2: 40960 (heap allocation functions) malloc/new/new[], --alloc-fns, etc.
     n0: 40000 0x10C2A5: s2n_alloc (in /build/s2n-tls/lib/libs2n.so)
     n0: 960 in 4 places, below massif's threshold (1.00%)

Only ``time`` and ``mem_heap_B`` feed the samples. Allocator bookkeeping
(``mem_heap_extra_B``), stacks and massif's own aggregate nodes are dropped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from ..core.errors import TruncatedTraceWarning, UnparseableTraceError
from ..core.types import Sample, SampleSeries, TraceHandle

logger = logging.getLogger("tlsmem.traces.massif")

REQUIRED_FIELDS = ("time", "mem_heap_B", "heap_tree")

_SEPARATOR = "#-----------"
_TREE_LINE = re.compile(r"^(?P<indent> *)n(?P<children>\d+): (?P<bytes>\d+) (?P<label>.*)$")
_ADDRESS = re.compile(r"^0x[0-9A-Fa-f]+: ")
_DIRECTORY = re.compile(r"(?:/[^/\s():]+)+/")
_RUST_HASH = re.compile(r"::h[0-9a-f]{16}\b")
_SNAPSHOT_NAME = re.compile(r"^(\d+)\.snapshot$")

_BOOKKEEPING_LABELS = (
    "below massif's threshold",
    "(heap allocation functions)",
)


def normalize_label(label: str, prefixes: Sequence[str] = ()) -> str:
    """Strip addresses, build directories and symbol hashes from a heap-tree label."""
    label = _ADDRESS.sub("", label.strip())
    for prefix in prefixes:
        if prefix:
            label = label.replace(prefix, "")
    label = _DIRECTORY.sub("", label)
    label = _RUST_HASH.sub("", label)
    return " ".join(label.split())


@dataclass(slots=True)
class _Record:
    fields: dict[str, str] = field(default_factory=dict)
    sites: dict[str, int] = field(default_factory=dict)
    malformed: str | None = None


@dataclass(slots=True)
class _ParsedFile:
    time_unit: str | None
    records: list[_Record]
    truncated: bool


def _parse_text(text: str, prefixes: Sequence[str]) -> _ParsedFile:
    time_unit: str | None = None
    records: list[_Record] = []
    current: _Record | None = None
    truncated = bool(text) and not text.endswith("\n")

    for raw in text.splitlines():
        line = raw.rstrip("\r")
        if not line or line == _SEPARATOR:
            continue
        if line.startswith("snapshot="):
            current = _Record()
            current.fields["snapshot"] = line.partition("=")[2]
            records.append(current)
            continue
        if current is None:
            if line.startswith("time_unit:"):
                time_unit = line.partition(":")[2].strip()
            continue
        if current.malformed:
            continue

        tree = _TREE_LINE.match(line)
        if tree is not None:
            if "heap_tree" not in current.fields:
                current.malformed = f"heap tree before header: {line!r}"
                continue
            if len(tree.group("indent")) == 1:
                label = tree.group("label")
                if any(marker in label for marker in _BOOKKEEPING_LABELS):
                    continue
                key = normalize_label(label, prefixes)
                current.sites[key] = current.sites.get(key, 0) + int(tree.group("bytes"))
            continue

        key, sep, value = line.partition("=")
        if not sep or not key or " " in key:
            current.malformed = f"unexpected line {line!r}"
            continue
        current.fields[key] = value

    return _ParsedFile(time_unit=time_unit, records=records, truncated=truncated)


def _validate(record: _Record) -> tuple[float, int] | None:
    if record.malformed:
        return None
    if any(name not in record.fields for name in REQUIRED_FIELDS):
        return None
    try:
        elapsed = float(record.fields["time"])
        heap_bytes = int(record.fields["mem_heap_B"])
    except ValueError:
        return None
    if heap_bytes < 0 or elapsed < 0:
        return None
    return elapsed, heap_bytes


def snapshot_files(directory: Path) -> list[Path]:
    """Monitor-command snapshot files in ``directory``, ordered by their number."""
    if not directory.is_dir():
        return []
    numbered = []
    for path in directory.iterdir():
        match = _SNAPSHOT_NAME.match(path.name)
        if match and path.is_file():
            numbered.append((int(match.group(1)), path))
    return [path for _, path in sorted(numbered)]


def _trace_texts(trace: TraceHandle) -> Iterator[tuple[Path, str]]:
    files: Iterable[Path] = ()
    if trace.snapshot_dir is not None:
        files = snapshot_files(trace.snapshot_dir)
    if not files:
        files = [trace.path]
    for path in files:
        try:
            yield path, path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError as exc:
            raise UnparseableTraceError(f"Trace not found: {path}") from exc


def extract(trace: TraceHandle | Path, *, prefixes: Sequence[str] = ()) -> SampleSeries:
    """Parse a trace into time-ordered heap samples.

    Extraction stops at the first malformed or incomplete record; everything
    before it is kept and a ``TruncatedTraceWarning`` is attached. Raises
    ``UnparseableTraceError`` when no sample survives.
    """
    if not isinstance(trace, TraceHandle):
        trace = TraceHandle(path=Path(trace))

    samples: list[Sample] = []
    sites: list[dict[str, int]] = []
    warnings: list[TruncatedTraceWarning] = []
    time_unit: str | None = None
    last_elapsed = float("-inf")
    dropped = 0

    for path, text in _trace_texts(trace):
        parsed = _parse_text(text, prefixes)
        time_unit = time_unit or parsed.time_unit
        records = parsed.records
        if parsed.truncated and records:
            records = records[:-1]
            warnings.append(TruncatedTraceWarning(f"{path}: trailing record cut off mid-write"))

        stop = False
        for index, record in enumerate(records):
            valid = _validate(record)
            if valid is None:
                skipped = len(records) - index
                reason = record.malformed or "incomplete record"
                warnings.append(
                    TruncatedTraceWarning(
                        f"{path}: skipped {skipped} record(s) from snapshot "
                        f"{record.fields.get('snapshot', '?')} ({reason})"
                    )
                )
                stop = True
                break
            elapsed, heap_bytes = valid
            if elapsed < last_elapsed:
                dropped += 1
                continue
            last_elapsed = elapsed
            samples.append(Sample(elapsed=elapsed, heap_bytes=heap_bytes))
            sites.append(dict(record.sites))
        if stop:
            break

    if dropped:
        logger.debug("Dropped %d out-of-order snapshot(s) from %s", dropped, trace.path)
    if not samples:
        raise UnparseableTraceError(f"No valid heap samples in {trace.path}")
    for warning in warnings:
        logger.warning("%s", warning)

    return SampleSeries(
        samples=tuple(samples),
        time_unit=time_unit or "i",
        sites=tuple(sites),
        warnings=tuple(warnings),
    )


__all__ = ["extract", "normalize_label", "snapshot_files"]
