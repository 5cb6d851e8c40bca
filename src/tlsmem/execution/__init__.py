"""Execution pipeline components for benchmark sessions."""

from .layout import SessionLayout
from .lock import SessionLock
from .profiler import MassifProfiler, ProfileResult
from .runner import ProfilingOrchestrator
from .session import BenchmarkSession, SessionReport, default_session_id
from .sink import JsonlResultSink, SampleSink

__all__ = [
    "BenchmarkSession",
    "JsonlResultSink",
    "MassifProfiler",
    "ProfileResult",
    "ProfilingOrchestrator",
    "SampleSink",
    "SessionLayout",
    "SessionLock",
    "SessionReport",
    "default_session_id",
]
