"""Pinned, shallow, cached source checkouts."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from ..core.errors import FetchError

logger = logging.getLogger("tlsmem.backends.fetch")


def _slugify(name: str) -> str:
    slug = "".join(c if c.isalnum() or c in ("-", "_", ".") else "_" for c in name)
    return slug.strip("_") or "source"


class GitFetcher:
    """Clone ``repo_url`` at ``ref`` once per cache directory and reuse it afterwards."""

    def __init__(self, cache_dir: Path, *, git: str = "git", timeout: float | None = 600) -> None:
        self.cache_dir = Path(cache_dir)
        self.git = git
        self.timeout = timeout

    def checkout_path(self, repo_url: str, ref: str) -> Path:
        repo_name = repo_url.rstrip("/").rsplit("/", 1)[-1].removesuffix(".git")
        return self.cache_dir / "sources" / f"{_slugify(repo_name)}@{_slugify(ref or 'HEAD')}"

    def fetch(self, repo_url: str, ref: str = "", *, submodules: bool = False) -> Path:
        dest = self.checkout_path(repo_url, ref)
        if (dest / ".git").exists():
            logger.debug("Reusing cached checkout %s", dest)
            return dest

        staging = dest.with_name(dest.name + ".partial")
        if staging.exists():
            shutil.rmtree(staging)
        staging.parent.mkdir(parents=True, exist_ok=True)

        cmd = [self.git, "clone", "--depth=1"]
        if ref:
            cmd.extend(["--branch", ref])
        if submodules:
            cmd.extend(["--recurse-submodules", "--shallow-submodules"])
        cmd.extend([repo_url, str(staging)])

        logger.info("Fetching %s (%s)", repo_url, ref or "default branch")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise FetchError(f"git clone of {repo_url} failed: {exc}") from exc

        if result.returncode != 0:
            shutil.rmtree(staging, ignore_errors=True)
            output = (result.stdout.strip() + "\n" + result.stderr.strip()).strip()
            raise FetchError(f"git clone of {repo_url}@{ref or 'HEAD'} failed: {output}")

        staging.rename(dest)
        return dest


__all__ = ["GitFetcher"]
