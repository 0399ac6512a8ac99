"""Parallel escape-time rendering into a flat packed-pixel buffer."""

from __future__ import annotations

import functools
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import MutableSequence, Optional

import numpy as np
import tensorflow as tf

from .color import encode_array
from .variants import (
    DEFAULT_ESCAPE_RADIUS,
    DEFAULT_MAX_ITERATIONS,
    FractalVariant,
    Julia,
    check_budget,
    initial_state,
    integer_power,
)
from .viewport import Orientation, Viewport, vertical_span

PARTITIONS_PER_WORKER = 4


@dataclass(frozen=True)
class RenderParameters:
    """Per-frame settings that are independent of the window size."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    escape_radius: float = DEFAULT_ESCAPE_RADIUS
    orientation: Orientation = Orientation.BOTTOM_UP
    workers: Optional[int] = None

    def __post_init__(self) -> None:
        check_budget(self.max_iterations, self.escape_radius)
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}.")


def _complex_multiply(a: tuple[tf.Tensor, tf.Tensor], b: tuple[tf.Tensor, tf.Tensor]) -> tuple[tf.Tensor, tf.Tensor]:
    ar, ai = a
    br, bi = b
    return ar * br - ai * bi, ar * bi + ai * br


def _escape_step(
    zr: tf.Tensor,
    zi: tf.Tensor,
    cr: tf.Tensor,
    ci: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
    threshold: tf.Tensor,
    power: int,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every point that has not escaped by one step of the recurrence."""

    pr, pi = integer_power((zr, zi), power, _complex_multiply)
    zr = tf.where(active, pr + cr, zr)
    zi = tf.where(active, pi + ci, zi)
    ns = ns + tf.cast(active, tf.int32)
    escaped = zr * zr + zi * zi > threshold
    return zr, zi, ns, tf.logical_and(active, tf.logical_not(escaped))


@functools.lru_cache(maxsize=8)
def _escape_kernel(power: int):
    """Build the iteration graph for one exponent; the power is unrolled at trace time."""

    @tf.function(reduce_retracing=True)
    def run(
        zr: tf.Tensor,
        zi: tf.Tensor,
        cr: tf.Tensor,
        ci: tf.Tensor,
        max_iterations: tf.Tensor,
        threshold: tf.Tensor,
    ) -> tf.Tensor:
        i = tf.constant(0, dtype=tf.int32)
        ns = tf.zeros_like(zr, tf.int32)
        active = tf.ones_like(ns, tf.bool)

        def cond(i, zr, zi, ns, active):
            return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

        def body(i, zr, zi, ns, active):
            zr, zi, ns, active = _escape_step(zr, zi, cr, ci, ns, active, threshold, power)
            return i + 1, zr, zi, ns, active

        _, _, _, ns, _ = tf.while_loop(cond, body, (i, zr, zi, ns, active))
        return ns

    return run


def escape_counts(
    start: int,
    stop: int,
    width: int,
    height: int,
    variant: FractalVariant,
    viewport: Viewport,
    params: RenderParameters,
) -> np.ndarray:
    """Escape counts for the linear pixel indices ``[start, stop)``."""

    indices = tf.range(start, stop, dtype=tf.int64)
    xs = tf.cast(indices % width, tf.float64)
    ys = tf.cast(indices // width, tf.float64)

    real = xs / np.float64(width) * np.float64(viewport.right - viewport.left) + np.float64(viewport.left)
    origin, extent = vertical_span(viewport, params.orientation)
    imag = ys / np.float64(height) * np.float64(extent) + np.float64(origin)

    zeros = tf.zeros_like(real)
    (zr, zi), c = initial_state(variant, (real, imag), (zeros, zeros))
    if isinstance(variant, Julia):
        c = (tf.fill(tf.shape(real), np.float64(c.real)), tf.fill(tf.shape(real), np.float64(c.imag)))
    cr, ci = c

    threshold = tf.constant(params.escape_radius * params.escape_radius, dtype=tf.float64)
    max_iterations = tf.constant(params.max_iterations, dtype=tf.int32)
    ns = _escape_kernel(variant.power)(zr, zi, cr, ci, max_iterations, threshold)
    return ns.numpy()


def partition(total: int, parts: int) -> list[tuple[int, int]]:
    """Split ``[0, total)`` into at most ``parts`` contiguous, disjoint ranges."""

    if total <= 0:
        return []
    parts = max(1, min(parts, total))
    base, extra = divmod(total, parts)
    bounds = []
    start = 0
    for k in range(parts):
        stop = start + base + (1 if k < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds


def _check_preconditions(buffer: MutableSequence[int], width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Render dimensions must be positive, got {width}x{height}.")
    if len(buffer) != width * height:
        raise ValueError(
            f"Buffer holds {len(buffer)} pixels but a {width}x{height} frame needs {width * height}."
        )


def render_frame(
    buffer: MutableSequence[int],
    width: int,
    height: int,
    variant: FractalVariant,
    viewport: Viewport,
    params: RenderParameters,
    *,
    device: Optional[str] = None,
) -> None:
    """Fill ``buffer`` with the packed gray pixels of one frame.

    The index space is cut into disjoint slices that are computed and written
    concurrently; the call returns once every slice has been stored.
    """

    _check_preconditions(buffer, width, height)
    workers = params.workers or os.cpu_count() or 1
    bounds = partition(width * height, workers * PARTITIONS_PER_WORKER)

    def fill(start: int, stop: int) -> None:
        with tf.device(device if device is not None else "/CPU:0"):
            counts = escape_counts(start, stop, width, height, variant, viewport, params)
        buffer[start:stop] = encode_array(counts, params.max_iterations)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(fill, start, stop) for start, stop in bounds]
        for future in futures:
            future.result()


def render(
    buffer: MutableSequence[int],
    width: int,
    height: int,
    variant: FractalVariant,
    viewport: Viewport,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    *,
    escape_radius: float = DEFAULT_ESCAPE_RADIUS,
    orientation: Orientation = Orientation.BOTTOM_UP,
    workers: Optional[int] = None,
    device: Optional[str] = None,
) -> None:
    params = RenderParameters(
        max_iterations=max_iterations,
        escape_radius=escape_radius,
        orientation=orientation,
        workers=workers,
    )
    render_frame(buffer, width, height, variant, viewport, params, device=device)
