"""Public API for escape-time fractal rendering."""

from .color import channels, encode, encode_array
from .renderer import (
    RenderParameters,
    escape_counts,
    partition,
    render,
    render_frame,
)
from .variants import (
    DEFAULT_ESCAPE_RADIUS,
    DEFAULT_MAX_ITERATIONS,
    FractalVariant,
    Julia,
    Mandelbrot,
    evaluate,
)
from .viewport import Orientation, Viewport, pixel_to_complex

__all__ = [
    "DEFAULT_ESCAPE_RADIUS",
    "DEFAULT_MAX_ITERATIONS",
    "FractalVariant",
    "Julia",
    "Mandelbrot",
    "Orientation",
    "RenderParameters",
    "Viewport",
    "channels",
    "encode",
    "encode_array",
    "escape_counts",
    "evaluate",
    "partition",
    "pixel_to_complex",
    "render",
    "render_frame",
]
