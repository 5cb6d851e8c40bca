"""Backend selector: bind a candidate to a crypto provider and produce a driver artifact."""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
from pathlib import Path
from typing import Dict, Mapping

from ..core.errors import BuildError, ConfigurationError, FetchError
from ..core.types import Candidate, CryptoBinding, SourcePin
from .build import CargoBuilder
from .fetch import GitFetcher
from .manifest import ManifestOverlay, apply_edits, expand_placeholders, referenced_placeholders

logger = logging.getLogger("tlsmem.backends.selector")


class BackendSelector:
    """Prepare sources, patch the manifest and build, once per (candidate, provider)."""

    def __init__(
        self,
        overlay: ManifestOverlay,
        fetcher: GitFetcher,
        builder: CargoBuilder,
        cache_dir: Path,
        *,
        native_prefix: Path | None = None,
    ) -> None:
        self._overlay = overlay
        self._fetcher = fetcher
        self._builder = builder
        self._cache_dir = Path(cache_dir)
        self._native_prefix = native_prefix
        self._artifacts: Dict[tuple[str, str], Path] = {}
        self._failures: Dict[tuple[str, str], BuildError] = {}

    def validate(self, candidate: Candidate, provider: str | None) -> CryptoBinding:
        """Check the binding exists and every placeholder it needs can be filled."""
        binding = candidate.binding(provider)
        source_names = {pin.name for pin in binding.sources}
        texts = [edit.replacement for edit in binding.manifest_edits]
        texts.extend(binding.env.values())
        for pin in binding.sources:
            texts.extend(edit.replacement for edit in pin.edits)
        for text in texts:
            for key in referenced_placeholders(text):
                if key == "native_prefix" and self._native_prefix is None:
                    raise ConfigurationError(
                        f"{candidate.name} with provider '{binding.provider}' needs --native-prefix"
                    )
                if key.startswith("source:") and key.split(":", 1)[1] not in source_names:
                    raise ConfigurationError(
                        f"{candidate.name} references unknown source '{key}'"
                    )
        return binding

    def configure(self, candidate: Candidate, provider: str | None = None) -> Path:
        """Return the driver artifact for ``candidate`` bound to ``provider``.

        Raises ``BuildError`` when fetching, patching or compiling fails; the
        failure is remembered so later calls for the same key fail fast.
        """
        binding = candidate.binding(provider)
        key = (candidate.name, binding.provider)
        if key in self._artifacts:
            return self._artifacts[key]
        if key in self._failures:
            raise self._failures[key]

        try:
            sources = {
                pin.name: self._prepare_source(candidate, binding, pin) for pin in binding.sources
            }
            placeholders = self._placeholders(sources)
            manifest_text = self._overlay.apply(
                binding.manifest_edits,
                placeholders,
                label=f"{candidate.name}/{binding.provider}",
            )
            env = {name: expand_placeholders(value, placeholders) for name, value in binding.env.items()}
            artifact = self._builder.build(candidate.name, binding.provider, manifest_text, env)
        except BuildError as exc:
            self._failures[key] = exc
            raise
        except (FetchError, ValueError, OSError) as exc:
            error = BuildError(candidate.name, str(exc))
            self._failures[key] = error
            raise error from exc

        self._artifacts[key] = artifact
        return artifact

    def _placeholders(self, sources: Mapping[str, Path]) -> dict[str, str]:
        values = {f"source:{name}": str(path) for name, path in sources.items()}
        if self._native_prefix is not None:
            values["native_prefix"] = str(self._native_prefix)
        return values

    def _prepare_source(self, candidate: Candidate, binding: CryptoBinding, pin: SourcePin) -> Path:
        checkout = self._fetcher.fetch(pin.repo_url, pin.ref, submodules=pin.submodules)
        prepared = self._cache_dir / "prepared" / f"{candidate.name}-{binding.provider}" / pin.name
        stamp = prepared.with_name(pin.name + ".stamp")
        expected = _pin_fingerprint(pin, checkout)

        if prepared.exists() and stamp.exists() and stamp.read_text().strip() == expected:
            logger.debug("Reusing prepared source %s", prepared)
            return prepared

        if prepared.exists():
            shutil.rmtree(prepared)
        prepared.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(checkout, prepared, symlinks=True, ignore=shutil.ignore_patterns(".git"))

        if pin.edits:
            manifest = prepared / pin.manifest
            text = manifest.read_text(encoding="utf-8")
            manifest.write_text(apply_edits(text, pin.edits, self._placeholders({})), encoding="utf-8")
        stamp.write_text(expected)
        logger.info("Prepared %s@%s for %s (%s)", pin.name, pin.ref or "HEAD", candidate.name, binding.provider)
        return prepared


def _pin_fingerprint(pin: SourcePin, checkout: Path) -> str:
    payload = {
        "repo": pin.repo_url,
        "ref": pin.ref,
        "manifest": pin.manifest,
        "edits": [[edit.pattern, edit.replacement] for edit in pin.edits],
        "checkout": str(checkout),
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


__all__ = ["BackendSelector"]
