"""Build collaborator: compile the workload driver and cache the artifact per binding."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping

from ..core.errors import BuildError

logger = logging.getLogger("tlsmem.backends.build")

FINGERPRINT_FILE = ".fingerprint"


def fingerprint(manifest_text: str, env: Mapping[str, str], binary: str) -> str:
    digest = hashlib.sha256()
    digest.update(binary.encode("utf-8"))
    digest.update(b"\0")
    digest.update(manifest_text.encode("utf-8"))
    for key in sorted(env):
        digest.update(f"\0{key}={env[key]}".encode("utf-8"))
    return digest.hexdigest()


class CargoBuilder:
    """Run ``cargo build --release --bin <binary>`` inside the workload crate."""

    def __init__(
        self,
        workload_dir: Path,
        cache_dir: Path,
        *,
        binary: str = "memory",
        cargo: str = "cargo",
    ) -> None:
        self.workload_dir = Path(workload_dir)
        self.cache_dir = Path(cache_dir)
        self.binary = binary
        self.cargo = cargo

    def artifact_dir(self, candidate: str, provider: str) -> Path:
        return self.cache_dir / "artifacts" / f"{candidate}-{provider}"

    def build(
        self,
        candidate: str,
        provider: str,
        manifest_text: str,
        env: Mapping[str, str] | None = None,
    ) -> Path:
        env = dict(env or {})
        expected = fingerprint(manifest_text, env, self.binary)
        dest_dir = self.artifact_dir(candidate, provider)
        artifact = dest_dir / self.binary
        stamp = dest_dir / FINGERPRINT_FILE

        if artifact.exists() and stamp.exists() and stamp.read_text().strip() == expected:
            logger.info("Reusing cached build for %s (%s)", candidate, provider)
            return artifact

        self._invalidate_target(expected)

        cmd = [self.cargo, "build", "--release", "--bin", self.binary]
        logger.info("Building %s (%s): %s", candidate, provider, " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                cwd=self.workload_dir,
                env={**os.environ, **env},
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise BuildError(candidate, str(exc)) from exc

        log = result.stdout + result.stderr
        if result.returncode != 0:
            raise BuildError(candidate, log)

        src = self.workload_dir / "target" / "release" / self.binary
        if not src.exists():
            raise BuildError(candidate, f"Expected binary not found: {src}\n{log}")

        dest_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, artifact)
        artifact.chmod(0o755)
        stamp.write_text(expected)
        (self.workload_dir / "target" / FINGERPRINT_FILE).write_text(expected)
        logger.info("Staged %s -> %s", src, artifact)
        return artifact

    def _invalidate_target(self, expected: str) -> None:
        # Build scripts may not rerun on env-only changes; a new binding
        # starts from an empty release tree.
        marker = self.workload_dir / "target" / FINGERPRINT_FILE
        if not marker.exists() or marker.read_text().strip() == expected:
            return
        release_dir = self.workload_dir / "target" / "release"
        if release_dir.exists():
            logger.info("Binding changed; removing %s", release_dir)
            shutil.rmtree(release_dir)


__all__ = ["CargoBuilder", "fingerprint"]
