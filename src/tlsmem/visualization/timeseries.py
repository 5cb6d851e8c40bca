"""Heap-over-time comparison charts."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

# Force non-interactive backend for headless environments
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from ..core.types import SeriesSet  # noqa: E402
from .base import Chart  # noqa: E402

_LINESTYLES = ("-", "--", "-.", ":")
_MARKERS = ("o", "s", "^", "D", "v", "P")

_TIME_UNITS = {
    "ms": "milliseconds",
    "i": "instructions",
    "B": "bytes allocated",
}


def render(
    series_set: SeriesSet,
    output_path: Path,
    *,
    title: Optional[str] = None,
    figsize: tuple[float, float] = (8, 5),
    dpi: int = 150,
) -> Chart:
    """Plot every candidate series of one mode on a shared time axis and save it."""
    if not series_set.series:
        raise ValueError(f"No series to render for mode '{series_set.mode}'")

    units = {series.time_unit for series in series_set.series.values()}
    if len(units) > 1:
        raise ValueError(
            f"Series for mode '{series_set.mode}' use different time units: {sorted(units)}"
        )
    unit = units.pop()

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    for index, candidate in enumerate(sorted(series_set.series)):
        series = series_set.series[candidate]
        kib = [value / 1024.0 for value in series.heap_bytes]
        ax.plot(
            series.elapsed,
            kib,
            label=candidate,
            linestyle=_LINESTYLES[index % len(_LINESTYLES)],
            marker=_MARKERS[index % len(_MARKERS)],
            markersize=3,
            linewidth=1.5,
        )

    ax.set_title(title or f"Heap usage ({series_set.mode})")
    ax.set_xlabel(f"Elapsed ({_TIME_UNITS.get(unit, unit)})")
    ax.set_ylabel("Heap (KiB)")
    ax.grid(alpha=0.3)
    ax.legend()
    fig.tight_layout()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path)

    return Chart(
        mode=series_set.mode,
        path=output_path,
        candidates=tuple(sorted(series_set.series)),
        figure=fig,
    )


__all__ = ["render"]
