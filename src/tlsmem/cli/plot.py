"""Re-render comparison charts from a finished session."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import click

from ..core.types import Mode
from ..execution.layout import COMPARISON_DIR
from ..traces import load_session_series
from ..visualization import CropRegion, export_chart
from ._console import console, error, info, success, warning
from .run import _parse_crop


@click.command(help="Re-render comparison charts from persisted session samples.")
@click.argument("session_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--crop", callback=_parse_crop, metavar="L,T,R,B", help="Border removed before trimming PNGs.")
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to save charts (default: <session_dir>/comparison).",
)
@click.option("--mode", "modes", multiple=True, help="Only re-render these modes.")
def plot(
    session_dir: Path,
    crop: Optional[Tuple[int, int, int, int]],
    output_dir: Path | None,
    modes: Tuple[str, ...],
) -> None:
    """Rebuild one comparison chart per mode."""
    try:
        series_sets = load_session_series(session_dir)
    except RuntimeError as exc:
        error(str(exc))
        raise click.Abort()

    if modes:
        missing = [mode for mode in modes if mode not in series_sets]
        for mode in missing:
            warning(f"No persisted samples for mode '{mode}'")
        series_sets = {mode: series_sets[mode] for mode in modes if mode in series_sets}

    if not series_sets:
        warning("No artifacts generated")
        return

    output_dir = output_dir or session_dir / COMPARISON_DIR
    crop_region = CropRegion(*crop) if crop else None
    info(f"Session directory: {session_dir}")
    info(f"Output directory: {output_dir}")

    generated = 0
    failed = False
    console.print("\n[bold]Generated artifacts:[/bold]")
    for mode, series_set in sorted(series_sets.items()):
        try:
            artifacts = export_chart(
                series_set, output_dir / f"{Mode(mode).slug}.svg", crop_region=crop_region
            )
        except ValueError as exc:
            error(f"{mode}: {exc}")
            failed = True
            continue
        for kind, path in artifacts.items():
            console.print(f"  - {mode} ({kind}): {path}")
        generated += len(artifacts)

    if generated:
        success(f"Generated {generated} chart file(s)")
    if failed:
        raise click.exceptions.Exit(1)



__all__ = ["plot"]
