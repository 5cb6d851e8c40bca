"""Trace extraction and persisted sample loading."""

from .loader import load_samples, load_session_series, load_summary
from .massif import extract, normalize_label, snapshot_files

__all__ = [
    "extract",
    "load_samples",
    "load_session_series",
    "load_summary",
    "normalize_label",
    "snapshot_files",
]
