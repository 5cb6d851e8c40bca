"""Run a heap-profiling session across candidates and modes."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import click

from ..core.errors import (
    ConfigurationError,
    ManifestRestoreError,
    OutputCollisionError,
    SessionLockError,
)
from ..core.types import SessionConfig
from ..execution import BenchmarkSession, SessionReport, default_session_id
from ..visualization import CropRegion
from ._console import error, info, success, table, warning
from ._logging import setup_logging

EXIT_RUN_FAILED = 1
EXIT_CONFIG = 2


def _parse_crop(ctx, param, value):
    if value is None:
        return None
    try:
        region = CropRegion.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc
    return (region.left, region.top, region.right, region.bottom)


def _split_values(ctx, param, values):
    collected = []
    for item in values:
        for piece in item.split(","):
            piece = piece.strip()
            if piece:
                collected.append(piece)
    return tuple(collected)


@click.command(help="Profile every candidate under every mode and render comparison charts.")
@click.option(
    "--candidate",
    "candidates",
    multiple=True,
    required=True,
    callback=_split_values,
    help="Candidate TLS library (repeatable or comma-separated).",
)
@click.option(
    "--mode",
    "modes",
    multiple=True,
    default=("default",),
    show_default=True,
    help="Workload mode, or an ad-hoc 'name:flag,flag' mode (repeatable).",
)
@click.option(
    "--output-root",
    required=True,
    type=click.Path(file_okay=False, resolve_path=True, path_type=Path),
    help="Directory that holds session output.",
)
@click.option(
    "--workload-dir",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Workload crate containing Cargo.toml.",
)
@click.option("--provider", default="default", show_default=True, help="Crypto provider binding.")
@click.option("--timeout", type=float, help="Per-run timeout in seconds.")
@click.option("--session-id", help="Session identifier (default: timestamp).")
@click.option("--crop", callback=_parse_crop, metavar="L,T,R,B", help="Border removed before trimming PNGs.")
@click.option("--keep-traces", is_flag=True, help="Keep raw massif traces after extraction.")
@click.option("--parallelism", type=click.IntRange(min=1), default=1, show_default=True)
@click.option(
    "--label-prefix",
    "label_prefixes",
    multiple=True,
    help="Prefix stripped from allocation-site labels (repeatable).",
)
@click.option(
    "--native-prefix",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path),
    help="Install prefix of native crypto libraries (needed by some providers).",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, resolve_path=True, path_type=Path),
    help="Directory for the session log (default: <output-root>/logs).",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output on the console.")
@click.pass_context
def run(
    ctx: click.Context,
    candidates: Tuple[str, ...],
    modes: Tuple[str, ...],
    output_root: Path,
    workload_dir: Path,
    provider: str,
    timeout: Optional[float],
    session_id: Optional[str],
    crop: Optional[Tuple[int, int, int, int]],
    keep_traces: bool,
    parallelism: int,
    label_prefixes: Tuple[str, ...],
    native_prefix: Optional[Path],
    log_dir: Optional[Path],
    verbose: bool,
) -> None:
    """Execute a benchmark session and exit with its worst outcome."""
    session_id = session_id or default_session_id()
    setup_logging((log_dir or output_root / "logs") / f"{session_id}.log", verbose=verbose)

    config = SessionConfig(
        candidates=candidates,
        modes=modes,
        output_root=output_root,
        workload_dir=workload_dir,
        session_id=session_id,
        provider=provider,
        timeout=timeout,
        crop=crop,
        keep_traces=keep_traces,
        parallelism=parallelism,
        label_prefixes=label_prefixes,
        native_prefix=native_prefix,
    )

    try:
        report = BenchmarkSession(config).run()
    except (ConfigurationError, OutputCollisionError, SessionLockError) as exc:
        error(str(exc))
        ctx.exit(EXIT_CONFIG)
    except ManifestRestoreError as exc:
        error(str(exc))
        ctx.exit(EXIT_RUN_FAILED)

    _print_report(report)
    ctx.exit(report.exit_code)


def _print_report(report: SessionReport) -> None:
    rows = []
    for entry in report.reports:
        peak = entry.series.peak_bytes / 1024.0 if entry.series is not None else None
        rows.append(
            [
                entry.run.candidate,
                entry.run.mode,
                entry.status.value,
                f"{peak:.1f}" if peak is not None else "-",
                f"{entry.run.duration_s:.1f}",
                str(len(entry.warnings)),
            ]
        )
    table(
        ["Candidate", "Mode", "Status", "Peak KiB", "Seconds", "Warnings"],
        rows,
        title=f"Session {report.session_dir.name}",
    )

    for entry in report.reports:
        for message in entry.warnings:
            warning(f"{entry.run.candidate}/{entry.run.mode}: {message}")

    for entry in report.failed:
        cause = entry.error or entry.run.error
        detail = f"{entry.run.candidate}/{entry.run.mode}: {entry.status.value}"
        if cause is not None:
            detail += f" ({cause})"
        if entry.run.log_path is not None:
            detail += f"; log: {entry.run.log_path}"
        error(detail)

    for name, message in report.render_errors.items():
        error(f"Chart for {name} not rendered: {message}")

    for mode, artifacts in report.comparisons.items():
        info(f"Comparison ({mode}): {artifacts['svg']}")

    if report.exit_code == 0:
        success(f"All {len(report.reports)} run(s) succeeded; results in {report.session_dir}")
    else:
        error(f"{len(report.failed)} of {len(report.reports)} run(s) failed; results in {report.session_dir}")


__all__ = ["run"]
