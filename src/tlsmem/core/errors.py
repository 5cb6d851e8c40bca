"""Error taxonomy for benchmark sessions."""

from __future__ import annotations


class TlsmemError(RuntimeError):
    """Base class for harness errors."""


class ConfigurationError(TlsmemError):
    """Unknown candidate/mode/provider or a missing collaborator binary."""


class BuildError(TlsmemError):
    """Preparing or compiling a candidate failed."""

    def __init__(self, candidate: str, log: str) -> None:
        super().__init__(f"Build failed for '{candidate}'")
        self.candidate = candidate
        self.log = log


class FetchError(TlsmemError):
    """A pinned external source could not be fetched."""


class RunFailed(TlsmemError):
    """A profiled Run exited non-zero, timed out, or was skipped."""

    def __init__(self, candidate: str, mode: str, status: int | str) -> None:
        super().__init__(f"Run {candidate}/{mode} failed ({status})")
        self.candidate = candidate
        self.mode = mode
        self.status = status


class UnparseableTraceError(TlsmemError):
    """No valid sample could be extracted from a trace."""


class OutputCollisionError(TlsmemError):
    """A run directory from a prior session already holds output."""


class SessionLockError(TlsmemError):
    """Another session holds the lock on the output root or manifest."""


class ManifestRestoreError(TlsmemError):
    """The pristine manifest could not be written back."""


class TruncatedTraceWarning(UserWarning):
    """Trailing trace records were malformed and skipped."""


__all__ = [
    "BuildError",
    "ConfigurationError",
    "FetchError",
    "ManifestRestoreError",
    "OutputCollisionError",
    "RunFailed",
    "SessionLockError",
    "TlsmemError",
    "TruncatedTraceWarning",
    "UnparseableTraceError",
]
