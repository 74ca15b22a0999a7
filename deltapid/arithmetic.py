"""
Single-precision arithmetic strategies.

The hardware datapath is an FP32 multiply unit feeding an FP32 adder, with a
rounding step after every operation. Python floats are doubles, so every
operation here is finished by an explicit rounding to float32. Two strategies
share the same interface:

- StepRoundedArithmetic: a rounding barrier after every multiply and every add,
  including inside multiply-accumulate chains (exact hardware match).
- FusedArithmetic: multiply-accumulate chains are summed in double precision
  and rounded once at the end (fast approximate mode).

Single operations on float32 operands are correctly rounded in both: products
of two float32 values are exact in double, and double has enough spare bits
that rounding a double sum or quotient to float32 gives the same result as a
native float32 operation.
"""

from enum import IntEnum
from typing import Iterable, Protocol, Tuple, runtime_checkable

import numpy as np


class Accumulation(IntEnum):
    """Multiply-accumulate evaluation modes."""

    STEP_ROUNDED = 0  # Round after every multiply and every add
    FUSED = 1  # Accumulate in double, round once


def f32(value: float) -> float:
    """Round a value to the nearest float32 and return it as a Python float."""
    return float(np.float32(value))


def fma_f32(a: float, b: float, c: float) -> float:
    """
    Fused multiply-add a*b + c with a single rounding to float32.

    The product of two float32 values is exact in double. The sum is split
    into its rounded double value and the exact error term (TwoSum), and the
    error only matters when the double sum lands exactly halfway between two
    float32 neighbours.
    """
    p = f32(a) * f32(b)
    c = f32(c)
    s = p + c
    bp = s - p
    err = (p - (s - bp)) + (c - bp)

    r = np.float32(s)
    if err != 0.0 and float(r) != s:
        toward = np.float32(np.inf) if s > float(r) else np.float32(-np.inf)
        other = np.nextafter(r, toward)
        if (float(r) + float(other)) / 2.0 == s:
            # Tie in double is not a tie in exact arithmetic
            if err > 0.0:
                r = max(r, other)
            else:
                r = min(r, other)
    return float(r)


@runtime_checkable
class Arithmetic(Protocol):
    def add(self, a: float, b: float) -> float:
        """Return a + b rounded to float32"""
        ...

    def sub(self, a: float, b: float) -> float:
        """Return a - b rounded to float32"""
        ...

    def mul(self, a: float, b: float) -> float:
        """Return a * b rounded to float32"""
        ...

    def div(self, a: float, b: float) -> float:
        """Return a / b rounded to float32"""
        ...

    def accumulate(self, terms: Iterable[Tuple[float, float]]) -> float:
        """Return the ordered sum of coefficient * signal products"""
        ...


class _Float32Ops:
    """Correctly rounded float32 scalar operations shared by both strategies."""

    def add(self, a: float, b: float) -> float:
        return float(np.float32(a) + np.float32(b))

    def sub(self, a: float, b: float) -> float:
        return float(np.float32(a) - np.float32(b))

    def mul(self, a: float, b: float) -> float:
        return float(np.float32(a) * np.float32(b))

    def div(self, a: float, b: float) -> float:
        return float(np.float32(a) / np.float32(b))


class StepRoundedArithmetic(_Float32Ops):
    """Serial MUL -> ADD pipeline with a rounding step after each operation."""

    mode = Accumulation.STEP_ROUNDED

    def accumulate(self, terms: Iterable[Tuple[float, float]]) -> float:
        acc = 0.0
        for coeff, signal in terms:
            acc = self.add(acc, self.mul(coeff, signal))
        return acc

    def __str__(self):
        return "StepRoundedArithmetic"


class FusedArithmetic(_Float32Ops):
    """Double-precision accumulation with a single final rounding."""

    mode = Accumulation.FUSED

    def accumulate(self, terms: Iterable[Tuple[float, float]]) -> float:
        acc = 0.0
        for coeff, signal in terms:
            acc += f32(coeff) * f32(signal)
        return f32(acc)

    def __str__(self):
        return "FusedArithmetic"


def make_arithmetic(mode: Accumulation) -> Arithmetic:
    """Create the arithmetic strategy for an accumulation mode."""
    if mode == Accumulation.STEP_ROUNDED:
        return StepRoundedArithmetic()
    if mode == Accumulation.FUSED:
        return FusedArithmetic()
    raise ValueError(f"Unknown accumulation mode: {mode!r}")
