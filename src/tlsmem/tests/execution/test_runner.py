"""Tests for the profiling orchestrator and massif collaborator."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional
from unittest.mock import Mock, patch

import pytest

from tlsmem.core.errors import BuildError, OutputCollisionError, RunFailed
from tlsmem.core.types import Candidate, CryptoBinding, Mode, RunStatus
from tlsmem.execution import MassifProfiler, ProfileResult, ProfilingOrchestrator, SessionLayout


def _candidate(name: str) -> Candidate:
    return Candidate(name=name, crate=name, default_provider="p", bindings={"p": CryptoBinding("p")})


CANDIDATES = [_candidate("s2n-tls"), _candidate("rustls"), _candidate("openssl")]
MODES = [Mode("default"), Mode("client", ("client",))]


class FakeProfiler:
    valgrind = "valgrind"

    def __init__(self, *, returncodes: Optional[dict] = None, timeouts: frozenset = frozenset()) -> None:
        self.returncodes = returncodes or {}
        self.timeouts = timeouts
        self.calls: list[dict] = []

    def profile(self, argv, trace_path, *, cwd, log_path, env=None, timeout=None) -> ProfileResult:
        self.calls.append({"argv": list(argv), "cwd": cwd, "env": dict(env or {}), "timeout": timeout})
        log_path.write_text("driver output\n")
        trace_path.write_text("desc: x\n")
        key = argv[1]
        if key in self.timeouts:
            return ProfileResult(list(argv), None, 3.0, log_path, timed_out=True)
        return ProfileResult(list(argv), self.returncodes.get(key, 0), 0.5, log_path)


def _orchestrator(tmp_path: Path, selector: Mock, profiler: FakeProfiler, **kwargs) -> ProfilingOrchestrator:
    layout = SessionLayout(tmp_path / "out", "s1")
    return ProfilingOrchestrator(selector, profiler, layout, **kwargs)


def _selector(failing: frozenset = frozenset()) -> Mock:
    selector = Mock()

    def _configure(candidate, provider=None):
        if candidate.name in failing:
            raise BuildError(candidate.name, "error: linking with `cc` failed")
        return Path(f"/artifacts/{candidate.name}/memory")

    selector.configure.side_effect = _configure
    return selector


class TestProfilingOrchestrator:
    def test_one_run_per_pair_in_stable_order(self, tmp_path: Path) -> None:
        profiler = FakeProfiler()
        runs = _orchestrator(tmp_path, _selector(), profiler).run_all(CANDIDATES, MODES)

        assert len(runs) == len(CANDIDATES) * len(MODES)
        assert [run.key for run in runs] == [
            (c.name, m.name) for c in CANDIDATES for m in MODES
        ]
        assert all(run.status is RunStatus.SUCCEEDED for run in runs)
        assert len({run.run_dir for run in runs}) == len(runs)

    def test_driver_invocation(self, tmp_path: Path) -> None:
        profiler = FakeProfiler()
        runs = _orchestrator(tmp_path, _selector(), profiler, timeout=30).run_all(
            [CANDIDATES[1]], [MODES[1]]
        )
        call = profiler.calls[0]
        assert call["argv"] == ["/artifacts/rustls/memory", "rustls", "client"]
        assert call["cwd"] == runs[0].run_dir
        assert runs[0].trace.snapshot_dir == runs[0].run_dir / "target" / "memory" / "rustls_client"
        assert call["timeout"] == 30
        assert runs[0].trace.path == runs[0].run_dir / "massif.out"
        assert runs[0].run_dir == tmp_path / "out" / "s1" / "rustls__client"

    def test_build_failure_marks_every_mode(self, tmp_path: Path) -> None:
        profiler = FakeProfiler()
        runs = _orchestrator(tmp_path, _selector(frozenset({"rustls"})), profiler).run_all(
            CANDIDATES, MODES
        )

        by_key = {run.key: run for run in runs}
        for mode in MODES:
            failed = by_key[("rustls", mode.name)]
            assert failed.status is RunStatus.BUILD_FAILED
            assert isinstance(failed.error, RunFailed)
            assert failed.error.status == "build"
            assert isinstance(failed.error.__cause__, BuildError)
            assert not failed.run_dir.exists()
        assert by_key[("openssl", "default")].status is RunStatus.SUCCEEDED
        assert len(profiler.calls) == 4

    def test_non_zero_exit_is_recorded(self, tmp_path: Path) -> None:
        profiler = FakeProfiler(returncodes={"openssl": 139})
        runs = _orchestrator(tmp_path, _selector(), profiler).run_all(CANDIDATES, MODES[:1])

        failed = runs[2]
        assert failed.status is RunStatus.FAILED
        assert failed.exit_code == 139
        assert failed.error.status == 139
        assert failed.log_path.read_text() == "driver output\n"
        assert runs[0].status is RunStatus.SUCCEEDED

    def test_timeout_removes_partial_run_dir(self, tmp_path: Path) -> None:
        profiler = FakeProfiler(timeouts=frozenset({"s2n-tls"}))
        runs = _orchestrator(tmp_path, _selector(), profiler, timeout=1).run_all(
            CANDIDATES, MODES[:1]
        )

        assert runs[0].status is RunStatus.TIMED_OUT
        assert runs[0].error.status == "timeout"
        assert not runs[0].run_dir.exists()
        assert runs[1].status is RunStatus.SUCCEEDED

    def test_existing_output_is_a_collision(self, tmp_path: Path) -> None:
        existing = tmp_path / "out" / "s1" / "rustls__default"
        existing.mkdir(parents=True)
        (existing / "massif.out").write_text("old")
        with pytest.raises(OutputCollisionError):
            _orchestrator(tmp_path, _selector(), FakeProfiler()).run_all([CANDIDATES[1]], MODES[:1])

    def test_relative_paths_survive_run_dir_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Resolves the program and --massif-out-file against its cwd like valgrind.
        valgrind = tmp_path / "valgrind"
        valgrind.write_text(
            "#!/bin/sh\n"
            "out=''\n"
            'for arg in "$@"; do\n'
            '  case "$arg" in --massif-out-file=*) out="${arg#--massif-out-file=}";; esac\n'
            "done\n"
            'while [ "$1" != "--" ]; do shift; done\n'
            "shift\n"
            '[ -x "$1" ] || exit 1\n'
            "printf 'desc: x\\n' > \"$out\"\n"
        )
        valgrind.chmod(0o755)
        artifact = tmp_path / ".tlsmem-cache" / "artifacts" / "openssl-openssl" / "memory"
        artifact.parent.mkdir(parents=True)
        artifact.write_text("#!/bin/sh\n")
        artifact.chmod(0o755)
        selector = Mock()
        selector.configure.return_value = Path(".tlsmem-cache/artifacts/openssl-openssl/memory")
        monkeypatch.chdir(tmp_path)

        orchestrator = ProfilingOrchestrator(
            selector, MassifProfiler(str(valgrind)), SessionLayout(Path("results"), "s1")
        )
        runs = orchestrator.run_all([CANDIDATES[2]], MODES[:1])

        assert runs[0].status is RunStatus.SUCCEEDED
        assert runs[0].run_dir.is_absolute()
        assert (tmp_path / "results" / "s1" / "openssl__default" / "massif.out").exists()

    def test_parallel_runs_keep_order(self, tmp_path: Path) -> None:
        selector = _selector(frozenset({"s2n-tls"}))
        runs = _orchestrator(tmp_path, selector, FakeProfiler(), parallelism=3).run_all(
            CANDIDATES, MODES
        )
        assert [run.key for run in runs] == [(c.name, m.name) for c in CANDIDATES for m in MODES]
        assert [run.status for run in runs[:2]] == [RunStatus.BUILD_FAILED] * 2
        assert selector.configure.call_count == len(CANDIDATES)


class TestMassifProfiler:
    def test_command_line(self, tmp_path: Path) -> None:
        profiler = MassifProfiler("valgrind", extra_args=("--threshold=0.1",))
        cmd = profiler.command(["./memory", "rustls", "pair"], tmp_path / "massif.out")
        assert cmd == [
            "valgrind",
            "--tool=massif",
            f"--massif-out-file={tmp_path / 'massif.out'}",
            "--time-unit=ms",
            "--threshold=0.1",
            "--",
            "./memory",
            "rustls",
            "pair",
        ]

    def test_relative_trace_path_is_made_absolute(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        cmd = MassifProfiler().command(["./memory"], Path("results/massif.out"))
        assert cmd[2] == f"--massif-out-file={tmp_path.resolve() / 'results' / 'massif.out'}"

    def test_profile_captures_output(self, tmp_path: Path) -> None:
        profiler = MassifProfiler()
        completed = subprocess.CompletedProcess([], 0)
        with patch("tlsmem.execution.profiler.subprocess.run", return_value=completed) as run:
            result = profiler.profile(
                ["./memory", "rustls"],
                tmp_path / "massif.out",
                cwd=tmp_path,
                log_path=tmp_path / "run.log",
                env={"LD_LIBRARY_PATH": "/opt/aws-lc/lib"},
                timeout=5,
            )
        assert result.returncode == 0
        assert not result.timed_out
        kwargs = run.call_args.kwargs
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 5
        assert kwargs["env"]["LD_LIBRARY_PATH"] == "/opt/aws-lc/lib"
        assert kwargs["stderr"] is subprocess.STDOUT

    def test_profile_timeout(self, tmp_path: Path) -> None:
        profiler = MassifProfiler()
        expired = subprocess.TimeoutExpired(["valgrind"], 1)
        with patch("tlsmem.execution.profiler.subprocess.run", side_effect=expired):
            result = profiler.profile(
                ["./memory", "rustls"],
                tmp_path / "massif.out",
                cwd=tmp_path,
                log_path=tmp_path / "run.log",
                timeout=1,
            )
        assert result.timed_out
        assert result.returncode is None
