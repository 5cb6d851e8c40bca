"""Tests for the click CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from tlsmem.cli import cli
from tlsmem.core.errors import ManifestRestoreError, OutputCollisionError, SessionLockError
from tlsmem.core.types import Run, RunReport, RunStatus, Sample, SampleSeries
from tlsmem.execution import SampleSink, SessionReport
from tlsmem.execution.sink import write_summary


def _report(tmp_path: Path, *statuses: RunStatus) -> SessionReport:
    reports = []
    for index, status in enumerate(statuses):
        run = Run(
            candidate=f"c{index}",
            mode="default",
            run_dir=tmp_path / f"c{index}__default",
            status=status,
            duration_s=1.0,
        )
        series = SampleSeries(samples=(Sample(0, 2048),)) if status.ok else None
        reports.append(RunReport(run=run, series=series))
    return SessionReport(session_dir=tmp_path / "s1", reports=reports)


def _run_args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "run",
        "--candidate",
        "rustls,openssl",
        "--output-root",
        str(tmp_path / "results"),
        "--workload-dir",
        str(tmp_path),
        "--session-id",
        "s1",
        *extra,
    ]


class TestRunCommand:
    def test_success_exits_zero(self, tmp_path: Path) -> None:
        runner = CliRunner()
        report = _report(tmp_path, RunStatus.SUCCEEDED, RunStatus.SUCCEEDED)
        with patch("tlsmem.cli.run.BenchmarkSession") as session_cls:
            session_cls.return_value.run.return_value = report
            result = runner.invoke(cli, _run_args(tmp_path, "--crop", "4,4,4,4", "--mode", "pair"))

        assert result.exit_code == 0, result.output
        config = session_cls.call_args.args[0]
        assert config.candidates == ("rustls", "openssl")
        assert config.modes == ("pair",)
        assert config.crop == (4, 4, 4, 4)
        assert config.session_id == "s1"
        assert (tmp_path / "results" / "logs" / "s1.log").exists()

    def test_relative_paths_are_resolved(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        report = _report(tmp_path, RunStatus.SUCCEEDED)
        with patch("tlsmem.cli.run.BenchmarkSession") as session_cls:
            session_cls.return_value.run.return_value = report
            result = CliRunner().invoke(
                cli, ["run", "--candidate", "rustls", "--output-root", "results", "--session-id", "s1"]
            )

        assert result.exit_code == 0, result.output
        config = session_cls.call_args.args[0]
        assert config.output_root == tmp_path.resolve() / "results"
        assert config.workload_dir == tmp_path.resolve()

    def test_failed_run_exits_one(self, tmp_path: Path) -> None:
        runner = CliRunner()
        report = _report(tmp_path, RunStatus.SUCCEEDED, RunStatus.BUILD_FAILED)
        with patch("tlsmem.cli.run.BenchmarkSession") as session_cls:
            session_cls.return_value.run.return_value = report
            result = runner.invoke(cli, _run_args(tmp_path))

        assert result.exit_code == 1
        assert "c1/default: build_failed" in result.output

    def test_unknown_candidate_exits_two(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "--candidate",
                "wolfssl",
                "--output-root",
                str(tmp_path / "results"),
                "--workload-dir",
                str(tmp_path),
            ],
        )
        assert result.exit_code == 2
        assert "Unknown candidate 'wolfssl'" in result.output

    def test_lock_and_collision_exit_two(self, tmp_path: Path) -> None:
        for exc in (SessionLockError("held by pid 42"), OutputCollisionError("rustls__default exists")):
            with patch("tlsmem.cli.run.BenchmarkSession") as session_cls:
                session_cls.return_value.run.side_effect = exc
                result = CliRunner().invoke(cli, _run_args(tmp_path))
            assert result.exit_code == 2
            assert str(exc) in result.output

    def test_restore_failure_exits_one(self, tmp_path: Path) -> None:
        with patch("tlsmem.cli.run.BenchmarkSession") as session_cls:
            session_cls.return_value.run.side_effect = ManifestRestoreError("Cargo.toml is read-only")
            result = CliRunner().invoke(cli, _run_args(tmp_path))
        assert result.exit_code == 1

    def test_bad_crop_is_usage_error(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, _run_args(tmp_path, "--crop", "1,2"))
        assert result.exit_code == 2
        assert "L,T,R,B" in result.output


class TestPlotCommand:
    def test_rerenders_comparisons(self, tmp_path: Path) -> None:
        session_dir = tmp_path / "s1"
        reports = []
        for name in ("rustls", "openssl"):
            run_dir = session_dir / f"{name}__default"
            run_dir.mkdir(parents=True)
            series = SampleSeries(samples=(Sample(0, 0), Sample(1, 4096)))
            report = RunReport(
                run=Run(candidate=name, mode="default", run_dir=run_dir, status=RunStatus.SUCCEEDED),
                series=series,
            )
            report.artifacts["samples"] = SampleSink().save(series, run_dir)
            reports.append(report)
        write_summary(
            session_dir / "summary.json",
            session_id="s1",
            provider="default",
            reports=reports,
            comparisons={},
            render_errors={},
        )

        result = CliRunner().invoke(cli, ["plot", str(session_dir)])

        assert result.exit_code == 0, result.output
        assert (session_dir / "comparison" / "default.svg").exists()
        assert (session_dir / "comparison" / "default.png").exists()

    def test_missing_summary_aborts(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["plot", str(tmp_path)])
        assert result.exit_code == 1
        assert "No session summary" in result.output


class TestListCommand:
    def test_lists_candidates_and_modes(self) -> None:
        result = CliRunner().invoke(cli, ["list", "all"])
        assert result.exit_code == 0
        for name in ("s2n-tls", "rustls", "openssl", "default", "pair", "client", "server"):
            assert name in result.output
