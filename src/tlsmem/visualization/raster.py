"""Rasterize charts into PNG thumbnails with an optional crop-then-trim step."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from .base import Chart, CropRegion, RasterImage  # noqa: E402

WHITE = (255, 255, 255, 255)


def figure_pixels(figure) -> np.ndarray:
    """Draw ``figure`` and return its RGBA pixels as a ``(H, W, 4)`` uint8 array."""
    figure.canvas.draw()
    return np.asarray(figure.canvas.buffer_rgba()).copy()


def crop(pixels: np.ndarray, region: CropRegion) -> np.ndarray:
    height, width = pixels.shape[:2]
    if region.left + region.right >= width or region.top + region.bottom >= height:
        raise ValueError(
            f"Crop region {region} leaves nothing of a {width}x{height} image"
        )
    return pixels[region.top : height - region.bottom, region.left : width - region.right]


def content_bbox(
    pixels: np.ndarray, background: Sequence[int] = WHITE
) -> Optional[tuple[int, int, int, int]]:
    """Return ``(top, left, bottom, right)`` (exclusive end) of non-background pixels."""
    bg = np.asarray(background, dtype=pixels.dtype)[: pixels.shape[-1]]
    mask = np.any(pixels != bg, axis=-1)
    rows = np.flatnonzero(mask.any(axis=1))
    cols = np.flatnonzero(mask.any(axis=0))
    if rows.size == 0 or cols.size == 0:
        return None
    return int(rows[0]), int(cols[0]), int(rows[-1]) + 1, int(cols[-1]) + 1


def trim(pixels: np.ndarray, background: Sequence[int] = WHITE) -> np.ndarray:
    bbox = content_bbox(pixels, background)
    if bbox is None:
        return pixels
    top, left, bottom, right = bbox
    return pixels[top:bottom, left:right]


def rasterize(
    chart: Chart,
    crop_region: Optional[CropRegion] = None,
    *,
    output_path: Optional[Path] = None,
    background: Sequence[int] = WHITE,
) -> RasterImage:
    """Render ``chart`` to PNG. Cropping always happens before trimming."""
    if chart.figure is None:
        raise ValueError(f"Chart {chart.path} has been closed")

    pixels = figure_pixels(chart.figure)
    if crop_region is not None:
        pixels = crop(pixels, crop_region)
    pixels = np.ascontiguousarray(trim(pixels, background))

    path = output_path or chart.path.with_suffix(".png")
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(path, pixels, format="png")
    return RasterImage(path=path, width=pixels.shape[1], height=pixels.shape[0], pixels=pixels)


__all__ = ["content_bbox", "crop", "figure_pixels", "rasterize", "trim"]
