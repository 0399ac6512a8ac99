"""Grayscale packing of iteration counts into 0x00RRGGBB pixels."""

from __future__ import annotations

import numpy as np


def intensity(iterations: int, max_iterations: int) -> int:
    return (iterations * 255) // max_iterations


def pack_gray(level: int) -> int:
    return level | (level << 8) | (level << 16)


def encode(iterations: int, max_iterations: int) -> int:
    """Map an escape count linearly to a gray level and pack it into RGB."""

    return pack_gray(intensity(iterations, max_iterations))


def encode_array(iterations: np.ndarray, max_iterations: int) -> np.ndarray:
    """Vectorized :func:`encode` returning ``uint32`` pixels."""

    levels = (np.asarray(iterations, dtype=np.int64) * 255) // np.int64(max_iterations)
    levels = levels.astype(np.uint32)
    return levels | (levels << np.uint32(8)) | (levels << np.uint32(16))


def channels(pixel: int) -> tuple[int, int, int]:
    """Split a packed pixel into ``(red, green, blue)``."""

    return (pixel >> 16) & 0xFF, (pixel >> 8) & 0xFF, pixel & 0xFF
