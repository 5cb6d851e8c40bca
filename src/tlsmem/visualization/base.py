"""Core contracts for rendered artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np


@dataclass(slots=True)
class Chart:
    """A rendered comparison chart; owns its matplotlib figure until closed."""

    mode: str
    path: Path
    candidates: tuple[str, ...]
    figure: Optional[Any] = None

    def close(self) -> None:
        if self.figure is None:
            return
        import matplotlib.pyplot as plt

        plt.close(self.figure)
        self.figure = None


@dataclass(slots=True, frozen=True)
class CropRegion:
    """Fixed border, in pixels, removed before trimming.

    The values depend on the rendering resolution and must be calibrated for
    each DPI/figure size combination.
    """

    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0

    def __post_init__(self) -> None:
        for name in ("left", "top", "right", "bottom"):
            if getattr(self, name) < 0:
                raise ValueError(f"Crop {name} must be non-negative")

    @classmethod
    def parse(cls, raw: str) -> "CropRegion":
        """Parse ``L,T,R,B``."""
        parts = [piece.strip() for piece in raw.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Crop region must be L,T,R,B, got {raw!r}")
        left, top, right, bottom = (int(piece) for piece in parts)
        return cls(left=left, top=top, right=right, bottom=bottom)


@dataclass(slots=True, frozen=True)
class RasterImage:
    path: Path
    width: int
    height: int
    pixels: np.ndarray = field(repr=False)


__all__ = ["Chart", "CropRegion", "RasterImage"]
