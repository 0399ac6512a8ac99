"""Mapping between the output pixel grid and the complex plane."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace

import numpy as np


class Orientation(enum.Enum):
    """Which viewport edge the first buffer row is mapped to."""

    BOTTOM_UP = "bottom-up"
    TOP_DOWN = "top-down"


@dataclass(frozen=True)
class Viewport:
    """Rectangle of the complex plane shown on the output grid."""

    left: float
    right: float
    bottom: float
    top: float

    def __post_init__(self) -> None:
        bounds = (self.left, self.right, self.bottom, self.top)
        if not all(math.isfinite(value) for value in bounds):
            raise ValueError(f"Viewport bounds must be finite, got {bounds}.")
        if not self.left < self.right:
            raise ValueError(f"Viewport requires left < right, got {self.left} >= {self.right}.")
        if not self.bottom < self.top:
            raise ValueError(f"Viewport requires bottom < top, got {self.bottom} >= {self.top}.")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    def with_aspect(self, aspect: float) -> Viewport:
        """Return a viewport whose height is ``width * aspect``, keeping the vertical center."""

        if not aspect > 0:
            raise ValueError(f"Aspect ratio must be positive, got {aspect}.")
        half_height = np.float64(self.width) * np.float64(aspect) / 2.0
        center = (np.float64(self.bottom) + np.float64(self.top)) / 2.0
        return replace(self, bottom=float(center - half_height), top=float(center + half_height))


def vertical_span(viewport: Viewport, orientation: Orientation) -> tuple[float, float]:
    """Return ``(origin, extent)`` so that ``imag = (y / height) * extent + origin``."""

    if orientation is Orientation.TOP_DOWN:
        return viewport.top, viewport.bottom - viewport.top
    return viewport.bottom, viewport.top - viewport.bottom


def pixel_to_complex(
    x: int,
    y: int,
    width: int,
    height: int,
    viewport: Viewport,
    orientation: Orientation = Orientation.BOTTOM_UP,
) -> tuple[float, float]:
    real = (x / width) * (viewport.right - viewport.left) + viewport.left
    origin, extent = vertical_span(viewport, orientation)
    imag = (y / height) * extent + origin
    return real, imag
