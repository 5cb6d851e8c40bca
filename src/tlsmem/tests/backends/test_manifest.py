"""Tests for the manifest overlay."""

from __future__ import annotations

from pathlib import Path

import pytest

from tlsmem.backends.manifest import (
    OVERLAY_MARKER,
    ManifestOverlay,
    apply_edits,
    expand_placeholders,
    referenced_placeholders,
)
from tlsmem.core.errors import ConfigurationError, ManifestRestoreError
from tlsmem.core.types import ManifestEdit

RUSTLS_PATH_EDIT = ManifestEdit(
    pattern=r"^rustls = .*$",
    replacement='rustls = { path = "{source:rustls}/rustls" }',
)


class TestPlaceholders:
    def test_expands_named_and_source_tokens(self) -> None:
        value = "{native_prefix}/lib:{source:rustls}"
        placeholders = {"native_prefix": "/opt/aws-lc", "source:rustls": "/cache/rustls"}
        assert expand_placeholders(value, placeholders) == "/opt/aws-lc/lib:/cache/rustls"

    def test_leaves_toml_inline_tables_alone(self) -> None:
        value = '{ package = "aws-lc-rs", version = "1" }'
        assert expand_placeholders(value, {}) == value
        assert referenced_placeholders(value) == set()

    def test_missing_value_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="native_prefix"):
            expand_placeholders("{native_prefix}/lib", {})


class TestApplyEdits:
    def test_replaces_matching_line(self) -> None:
        text = 'rustls = "0.21"\nopenssl = "0.10"\n'
        patched = apply_edits(text, [RUSTLS_PATH_EDIT], {"source:rustls": "/src"})
        assert patched == 'rustls = { path = "/src/rustls" }\nopenssl = "0.10"\n'

    def test_edit_matching_nothing_is_an_error(self) -> None:
        with pytest.raises(ValueError, match="matched nothing"):
            apply_edits('openssl = "0.10"\n', [RUSTLS_PATH_EDIT], {"source:rustls": "/src"})


class TestManifestOverlay:
    def test_round_trip_is_byte_identical(self, workload_dir: Path) -> None:
        manifest = workload_dir / "Cargo.toml"
        original = manifest.read_bytes()

        with ManifestOverlay(manifest) as overlay:
            overlay.apply([RUSTLS_PATH_EDIT], {"source:rustls": "/src"}, label="rustls/aws-lc")
            assert manifest.read_text().startswith(OVERLAY_MARKER)
            assert overlay.active == "rustls/aws-lc"

        assert manifest.read_bytes() == original
        assert not overlay.backup_path.exists()

    def test_apply_is_idempotent(self, workload_dir: Path) -> None:
        manifest = workload_dir / "Cargo.toml"
        with ManifestOverlay(manifest) as overlay:
            first = overlay.apply([RUSTLS_PATH_EDIT], {"source:rustls": "/src"}, label="x")
            second = overlay.apply([RUSTLS_PATH_EDIT], {"source:rustls": "/src"}, label="x")
            assert first == second
            assert manifest.read_text() == first
            assert first.count("path = ") == 1

    def test_empty_edits_leave_manifest_unmarked(self, workload_dir: Path) -> None:
        manifest = workload_dir / "Cargo.toml"
        with ManifestOverlay(manifest) as overlay:
            text = overlay.apply([], label="openssl/openssl")
            assert text == overlay.pristine_text
            assert not manifest.read_text().startswith(OVERLAY_MARKER)

    def test_restores_on_error(self, workload_dir: Path) -> None:
        manifest = workload_dir / "Cargo.toml"
        original = manifest.read_bytes()
        with pytest.raises(RuntimeError, match="boom"):
            with ManifestOverlay(manifest) as overlay:
                overlay.apply([RUSTLS_PATH_EDIT], {"source:rustls": "/src"})
                raise RuntimeError("boom")
        assert manifest.read_bytes() == original

    def test_recovers_from_stale_overlay(self, workload_dir: Path) -> None:
        manifest = workload_dir / "Cargo.toml"
        original = manifest.read_bytes()
        crashed = ManifestOverlay(manifest)
        crashed.open()
        crashed.apply([RUSTLS_PATH_EDIT], {"source:rustls": "/src"})
        # Simulate a crash: the overlay is never restored.

        with ManifestOverlay(manifest) as overlay:
            assert overlay.pristine_text.encode() == original
        assert manifest.read_bytes() == original

    def test_stale_overlay_without_backup(self, workload_dir: Path) -> None:
        manifest = workload_dir / "Cargo.toml"
        manifest.write_text(f"{OVERLAY_MARKER} (rustls)\n[dependencies]\n")
        with pytest.raises(ManifestRestoreError, match="no backup"):
            ManifestOverlay(manifest).open()

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            ManifestOverlay(tmp_path / "Cargo.toml").open()

    def test_restore_failure_is_raised(self, workload_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        manifest = workload_dir / "Cargo.toml"
        overlay = ManifestOverlay(manifest)
        overlay.open()
        overlay.apply([RUSTLS_PATH_EDIT], {"source:rustls": "/src"})

        def _fail(self, data):
            raise PermissionError("read-only file system")

        monkeypatch.setattr(Path, "write_bytes", _fail)
        with pytest.raises(ManifestRestoreError, match="read-only"):
            overlay.restore()
