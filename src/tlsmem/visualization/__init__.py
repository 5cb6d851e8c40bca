"""Comparison charts and raster thumbnails."""

from .base import Chart, CropRegion, RasterImage
from .export import export_chart
from .raster import content_bbox, crop, rasterize, trim
from .timeseries import render

__all__ = [
    "Chart",
    "CropRegion",
    "RasterImage",
    "content_bbox",
    "crop",
    "export_chart",
    "rasterize",
    "render",
    "trim",
]
