"""Fractal variants and the scalar escape-time evaluator."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Callable, TypeVar, Union

T = TypeVar("T")

DEFAULT_POWER = 2
DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_ESCAPE_RADIUS = 2.0


def _check_power(power: int) -> None:
    if isinstance(power, bool) or not isinstance(power, int):
        raise ValueError(f"Fractal power must be an integer, got {power!r}.")
    if power < 2:
        raise ValueError(f"Fractal power must be at least 2, got {power}.")


def check_budget(max_iterations: int, escape_radius: float) -> None:
    if max_iterations <= 0:
        raise ValueError(f"max_iterations must be positive, got {max_iterations}.")
    if not escape_radius > 0:
        raise ValueError(f"escape_radius must be positive, got {escape_radius}.")


@dataclass(frozen=True)
class Mandelbrot:
    """``z = z**power + sample`` starting from ``z = 0``."""

    power: int = DEFAULT_POWER

    def __post_init__(self) -> None:
        _check_power(self.power)


@dataclass(frozen=True)
class Julia:
    """``z = z**power + constant`` starting from ``z = sample``."""

    power: int = DEFAULT_POWER
    constant: complex = complex(-0.8, 0.156)

    def __post_init__(self) -> None:
        _check_power(self.power)
        object.__setattr__(self, "constant", complex(self.constant))


FractalVariant = Union[Mandelbrot, Julia]


def initial_state(variant: FractalVariant, sample: T, zero: T) -> tuple[T, T]:
    """Return the starting ``(z, c)`` pair for ``variant`` at ``sample``."""

    if isinstance(variant, Mandelbrot):
        return zero, sample
    if isinstance(variant, Julia):
        return sample, variant.constant
    raise TypeError(f"Unknown fractal variant: {variant!r}")


def integer_power(value: T, power: int, multiply: Callable[[T, T], T] = operator.mul) -> T:
    """Raise ``value`` to a positive integer power by binary exponentiation.

    ``multiply`` lets the same sequence of products be replayed on other
    representations, so every evaluator rounds identically.
    """

    result = None
    base = value
    remaining = power
    while remaining:
        if remaining & 1:
            result = base if result is None else multiply(result, base)
        remaining >>= 1
        if remaining:
            base = multiply(base, base)
    return result


def evaluate(
    variant: FractalVariant,
    sample: complex,
    max_iterations: int,
    escape_radius: float = DEFAULT_ESCAPE_RADIUS,
) -> int:
    """Count recurrence steps until ``|z|`` exceeds ``escape_radius``.

    The step that crosses the threshold is counted, so the result lies in
    ``[1, max_iterations]``.
    """

    check_budget(max_iterations, escape_radius)
    z, c = initial_state(variant, complex(sample), 0j)
    power = variant.power
    threshold = escape_radius * escape_radius
    iterations = 0
    for _ in range(max_iterations):
        iterations += 1
        z = integer_power(z, power) + c
        if z.real * z.real + z.imag * z.imag > threshold:
            break
    return iterations
