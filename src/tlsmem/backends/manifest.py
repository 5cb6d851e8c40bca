"""Scoped, guaranteed-restored patching of the workload dependency manifest."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping, Sequence

from ..core.errors import ConfigurationError, ManifestRestoreError
from ..core.types import ManifestEdit

logger = logging.getLogger("tlsmem.backends.manifest")

OVERLAY_MARKER = "# tlsmem: overlay active"
BACKUP_SUFFIX = ".tlsmem-orig"

_PLACEHOLDER = re.compile(r"\{([a-z_]+(?::[A-Za-z0-9_.-]+)?)\}")


def expand_placeholders(value: str, placeholders: Mapping[str, str]) -> str:
    """Replace ``{name}`` / ``{source:name}`` tokens; TOML inline tables are left alone."""

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in placeholders:
            raise ConfigurationError(f"No value for placeholder '{{{key}}}' in {value!r}")
        return placeholders[key]

    return _PLACEHOLDER.sub(_sub, value)


def referenced_placeholders(value: str) -> set[str]:
    return {match.group(1) for match in _PLACEHOLDER.finditer(value)}


def apply_edits(
    text: str,
    edits: Sequence[ManifestEdit],
    placeholders: Mapping[str, str] | None = None,
) -> str:
    """Apply each edit to every matching line; an edit that matches nothing is an error."""
    for edit in edits:
        replacement = expand_placeholders(edit.replacement, placeholders or {})
        pattern = re.compile(edit.pattern, re.MULTILINE)
        text, count = pattern.subn(lambda _m, r=replacement: r, text)
        if count == 0:
            raise ValueError(f"Manifest edit {edit.pattern!r} matched nothing")
    return text


class ManifestOverlay:
    """Configuration overlay over a shared manifest file.

    Every ``apply`` starts from the pristine bytes captured on entry, so
    repeated application with the same edits yields the same file. Leaving the
    ``with`` block always writes the pristine bytes back. A backup file next to
    the manifest lets a later session recover from a crashed one.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.backup_path = self.path.with_name(self.path.name + BACKUP_SUFFIX)
        self._pristine: bytes | None = None
        self._active: str | None = None

    @property
    def active(self) -> str | None:
        return self._active

    @property
    def pristine_text(self) -> str:
        if self._pristine is None:
            raise RuntimeError("Manifest overlay is not open")
        return self._pristine.decode("utf-8")

    def __enter__(self) -> "ManifestOverlay":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def open(self) -> None:
        if not self.path.exists():
            raise ConfigurationError(f"Workload manifest not found: {self.path}")
        current = self.path.read_bytes()
        if current.startswith(OVERLAY_MARKER.encode("utf-8")):
            if not self.backup_path.exists():
                raise ManifestRestoreError(
                    f"{self.path} carries a stale overlay and no backup exists at {self.backup_path}"
                )
            logger.warning("Recovering %s from stale overlay backup %s", self.path, self.backup_path)
            current = self.backup_path.read_bytes()
            self.path.write_bytes(current)
        self._pristine = current
        self.backup_path.write_bytes(current)

    def apply(
        self,
        edits: Sequence[ManifestEdit],
        placeholders: Mapping[str, str] | None = None,
        *,
        label: str = "",
    ) -> str:
        """Patch the manifest from its pristine copy and return the new text."""
        patched = apply_edits(self.pristine_text, edits, placeholders)
        if edits:
            patched = f"{OVERLAY_MARKER} ({label})\n{patched}"
        self.path.write_text(patched, encoding="utf-8")
        self._active = label or None
        logger.debug("Applied %d manifest edit(s) for %s", len(edits), label or "<unnamed>")
        return patched

    def restore(self) -> None:
        if self._pristine is None:
            return
        try:
            self.path.write_bytes(self._pristine)
            if self.path.read_bytes() != self._pristine:
                raise OSError(f"{self.path} differs from pristine content after restore")
            self.backup_path.unlink(missing_ok=True)
        except OSError as exc:
            raise ManifestRestoreError(f"Failed to restore {self.path}: {exc}") from exc
        self._pristine = None
        self._active = None
        logger.debug("Restored pristine manifest %s", self.path)


__all__ = [
    "ManifestOverlay",
    "OVERLAY_MARKER",
    "apply_edits",
    "expand_placeholders",
    "referenced_placeholders",
]
