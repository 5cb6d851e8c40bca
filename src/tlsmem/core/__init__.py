"""
Core abstractions and shared infrastructure for tlsmem.
"""

from .errors import (
    BuildError,
    ConfigurationError,
    FetchError,
    ManifestRestoreError,
    OutputCollisionError,
    RunFailed,
    SessionLockError,
    TlsmemError,
    TruncatedTraceWarning,
    UnparseableTraceError,
)
from .registry import CandidateRegistry, ModeRegistry
from .types import (
    Candidate,
    CryptoBinding,
    ManifestEdit,
    Mode,
    Run,
    RunReport,
    RunStatus,
    Sample,
    SampleSeries,
    SeriesSet,
    SessionConfig,
    SourcePin,
    TraceHandle,
)

__all__ = [
    "BuildError",
    "Candidate",
    "CandidateRegistry",
    "ConfigurationError",
    "CryptoBinding",
    "FetchError",
    "ManifestEdit",
    "ManifestRestoreError",
    "Mode",
    "ModeRegistry",
    "OutputCollisionError",
    "Run",
    "RunFailed",
    "RunReport",
    "RunStatus",
    "Sample",
    "SampleSeries",
    "SeriesSet",
    "SessionConfig",
    "SessionLockError",
    "SourcePin",
    "TlsmemError",
    "TraceHandle",
    "TruncatedTraceWarning",
    "UnparseableTraceError",
]
