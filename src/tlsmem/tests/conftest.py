from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Sequence

import pytest

from tlsmem.core.registry import CandidateRegistry, ModeRegistry

WORKLOAD_MANIFEST = """[package]
name = "tls-memory-bench"
version = "0.1.0"
edition = "2021"

[dependencies]
rustls = "0.21"
s2n-tls = "0.0.30"
openssl = "0.10"
"""


def _massif_text(
    snapshots: Sequence[tuple[float, int]],
    *,
    time_unit: str = "ms",
    site: str = "0x4C2A5: rustls::conn::ConnectionCommon::new::h0123456789abcdef "
    "(in /home/ci/work/target/release/memory)",
) -> str:
    lines = [
        "desc: --time-unit=ms",
        "cmd: ./memory rustls",
        f"time_unit: {time_unit}",
    ]
    for index, (elapsed, heap) in enumerate(snapshots):
        lines.extend(
            [
                "#-----------",
                f"snapshot={index}",
                "#-----------",
                f"time={elapsed:g}",
                f"mem_heap_B={heap}",
                "mem_heap_extra_B=16",
                "mem_stacks_B=0",
                "heap_tree=detailed",
                f"n2: {heap + 64} (heap allocation functions) malloc/new/new[], --alloc-fns, etc.",
                f" n0: {heap} {site}",
                " n0: 64 in 3 places, below massif's threshold (1.00%)",
            ]
        )
    return "\n".join(lines) + "\n"


@pytest.fixture
def massif_text() -> Callable[..., str]:
    return _massif_text


@pytest.fixture
def workload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "workload"
    path.mkdir()
    (path / "Cargo.toml").write_text(WORKLOAD_MANIFEST)
    return path


@pytest.fixture(autouse=True)
def _reset_registries() -> Iterable[None]:
    yield
    CandidateRegistry.clear()
    ModeRegistry.clear()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterable[None]:
    yield
    logger = logging.getLogger("tlsmem")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
