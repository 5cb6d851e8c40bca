from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence

from .errors import ConfigurationError


def _freeze_mapping(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if mapping is None:
        return MappingProxyType({})
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping))


@dataclass(slots=True, frozen=True)
class ManifestEdit:
    """Line-oriented regex substitution applied to a manifest."""

    pattern: str
    replacement: str


@dataclass(slots=True, frozen=True)
class SourcePin:
    """External source checkout pinned to a ref, patched before use."""

    name: str
    repo_url: str
    ref: str
    manifest: str = "Cargo.toml"
    edits: tuple[ManifestEdit, ...] = ()
    submodules: bool = False


@dataclass(slots=True, frozen=True)
class CryptoBinding:
    """How one candidate is bound to one crypto provider.

    ``env`` values may reference ``{native_prefix}`` and ``{source:<name>}``;
    the latter expands to the prepared checkout of the named source pin.
    Manifest edit replacements may use the same placeholders.
    """

    provider: str
    manifest_edits: tuple[ManifestEdit, ...] = ()
    sources: tuple[SourcePin, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "env", _freeze_mapping(self.env))


@dataclass(slots=True, frozen=True)
class Candidate:
    """A benchmarked TLS implementation."""

    name: str
    crate: str
    default_provider: str
    bindings: Mapping[str, CryptoBinding] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "bindings", _freeze_mapping(self.bindings))

    def binding(self, provider: str | None) -> CryptoBinding:
        key = provider or self.default_provider
        if key == "default":
            key = self.default_provider
        try:
            return self.bindings[key]
        except KeyError as exc:
            available = ", ".join(sorted(self.bindings)) or "none"
            raise ConfigurationError(
                f"Candidate '{self.name}' has no binding for provider '{key}' "
                f"(available: {available})"
            ) from exc


@dataclass(slots=True, frozen=True)
class Mode:
    """A workload variant; ``flags`` are passed to the driver unmodified."""

    name: str
    flags: tuple[str, ...] = ()
    description: str = ""

    @property
    def slug(self) -> str:
        return "".join(c if c.isalnum() or c in "-_" else "_" for c in self.name).strip("_") or "mode"


class RunStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    BUILD_FAILED = "build_failed"
    UNPARSEABLE = "unparseable"

    @property
    def ok(self) -> bool:
        return self is RunStatus.SUCCEEDED


@dataclass(slots=True, frozen=True)
class TraceHandle:
    """Location of a Run's raw profiler output."""

    path: Path
    snapshot_dir: Optional[Path] = None


@dataclass(slots=True, frozen=True)
class Run:
    """One (candidate, mode) execution; created once, never mutated."""

    candidate: str
    mode: str
    run_dir: Path
    status: RunStatus
    started_at: float = 0.0
    duration_s: float = 0.0
    exit_code: Optional[int] = None
    trace: Optional[TraceHandle] = None
    log_path: Optional[Path] = None
    error: Optional[Exception] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.candidate, self.mode)


@dataclass(slots=True, frozen=True)
class Sample:
    elapsed: float
    heap_bytes: int


@dataclass(slots=True, frozen=True)
class SampleSeries:
    """Ordered heap samples extracted from one trace."""

    samples: tuple[Sample, ...]
    time_unit: str = "ms"
    sites: tuple[Mapping[str, int], ...] = ()
    warnings: tuple[Warning, ...] = ()

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def elapsed(self) -> list[float]:
        return [sample.elapsed for sample in self.samples]

    @property
    def heap_bytes(self) -> list[int]:
        return [sample.heap_bytes for sample in self.samples]

    @property
    def peak_bytes(self) -> int:
        return max((sample.heap_bytes for sample in self.samples), default=0)


@dataclass(slots=True, frozen=True)
class SeriesSet:
    """Series for one mode, keyed by candidate name."""

    mode: str
    series: Mapping[str, SampleSeries] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "series", _freeze_mapping(self.series))

    @classmethod
    def from_reports(cls, mode: str, reports: Sequence["RunReport"]) -> "SeriesSet":
        series: dict[str, SampleSeries] = {}
        for report in reports:
            if report.run.mode != mode:
                raise ValueError(
                    f"Run {report.run.candidate}/{report.run.mode} does not belong to mode '{mode}'"
                )
            if report.series is not None:
                series[report.run.candidate] = report.series
        return cls(mode=mode, series=series)


@dataclass(slots=True)
class RunReport:
    """Batch report entry: the Run plus what was extracted and rendered from it."""

    run: Run
    series: Optional[SampleSeries] = None
    error: Optional[Exception] = None
    warnings: list[str] = field(default_factory=list)
    artifacts: dict[str, Path] = field(default_factory=dict)

    @property
    def status(self) -> RunStatus:
        if self.run.status.ok and self.series is None and self.error is not None:
            return RunStatus.UNPARSEABLE
        return self.run.status

    @property
    def ok(self) -> bool:
        return self.status.ok


@dataclass(slots=True)
class SessionConfig:
    candidates: Sequence[str]
    modes: Sequence[str]
    output_root: Path
    workload_dir: Path = field(default_factory=Path.cwd)
    session_id: str = ""
    provider: str = "default"
    timeout: float | None = None
    crop: tuple[int, int, int, int] | None = None
    keep_traces: bool = False
    parallelism: int = 1
    label_prefixes: Sequence[str] = ()
    native_prefix: Path | None = None
    cache_dir: Path | None = None
    driver_binary: str = "memory"
    valgrind: str = "valgrind"
    massif_args: Sequence[str] = ()


__all__ = [
    "Candidate",
    "CryptoBinding",
    "ManifestEdit",
    "Mode",
    "Run",
    "RunReport",
    "RunStatus",
    "Sample",
    "SampleSeries",
    "SeriesSet",
    "SessionConfig",
    "SourcePin",
    "TraceHandle",
]
