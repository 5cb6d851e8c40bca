"""Render a SeriesSet to SVG plus a cropped-and-trimmed PNG."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from ..core.types import SeriesSet
from .base import CropRegion
from .raster import rasterize
from .timeseries import render


def export_chart(
    series_set: SeriesSet,
    svg_path: Path,
    *,
    crop_region: Optional[CropRegion] = None,
    title: Optional[str] = None,
) -> Dict[str, Path]:
    chart = render(series_set, svg_path, title=title)
    try:
        image = rasterize(chart, crop_region, output_path=svg_path.with_suffix(".png"))
    finally:
        chart.close()
    return {"svg": chart.path, "png": image.path}


__all__ = ["export_chart"]
