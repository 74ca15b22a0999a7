#!/usr/bin/env python3
"""
Rounding-barrier arithmetic tests.

The step-rounded strategy must round after every multiply and add; the fused
strategy rounds a whole multiply-accumulate chain once. fma_f32 must round
a*b + c exactly once, including the cases where a double-precision
intermediate lands on a float32 tie.
"""

import numpy as np
import pytest

from deltapid import (
    Accumulation,
    Arithmetic,
    FusedArithmetic,
    StepRoundedArithmetic,
    f32,
    fma_f32,
    make_arithmetic,
)


def test_f32_rounds_to_single_precision():
    assert f32(0.1) == float(np.float32(0.1))
    assert f32(0.1) != 0.1
    assert f32(12.0) == 12.0


def test_scalar_operations_are_correctly_rounded():
    for ar in (StepRoundedArithmetic(), FusedArithmetic()):
        a, b = f32(0.1), f32(3.0)
        assert ar.mul(a, b) == float(np.float32(a) * np.float32(b))
        assert ar.add(a, b) == float(np.float32(a) + np.float32(b))
        assert ar.sub(a, b) == float(np.float32(a) - np.float32(b))
        assert ar.div(a, b) == float(np.float32(a) / np.float32(b))


def test_step_rounded_accumulation_loses_small_terms():
    terms = [(1.0, 1.0e8), (1.0, 1.0), (1.0, -1.0e8)]
    # 1e8 + 1 is not representable in float32 and rounds back to 1e8
    assert StepRoundedArithmetic().accumulate(terms) == 0.0
    assert FusedArithmetic().accumulate(terms) == 1.0


def test_step_rounded_accumulation_order():
    ar = StepRoundedArithmetic()
    terms = [(f32(0.1), f32(3.3)), (f32(-0.7), f32(1.9)), (f32(2.5), f32(0.01))]
    acc = 0.0
    for c, s in terms:
        acc = float(np.float32(acc) + np.float32(c) * np.float32(s))
    assert ar.accumulate(terms) == acc


def test_fma_rounds_once():
    a = 1.0 + 2.0 ** -12
    b = 1.0 + 2.0 ** -12
    c = -(1.0 + 2.0 ** -11)
    # Exact result 2^-24 survives only without the intermediate product rounding
    assert fma_f32(a, b, c) == 2.0 ** -24
    ar = StepRoundedArithmetic()
    assert ar.add(ar.mul(a, b), c) == 0.0


def test_fma_resolves_double_rounding_tie():
    # a*b = 2^-24 + 2^-70 exactly; 1 + a*b rounds in double to the float32 midpoint 1 + 2^-24
    a = 8384513 * 2.0 ** -35
    b = 8392705 * 2.0 ** -35
    assert f32(a) == a and f32(b) == b
    assert f32(a * b + 1.0) == 1.0
    assert fma_f32(a, b, 1.0) == 1.0 + 2.0 ** -23


def test_fma_plain_values():
    assert fma_f32(2.0, 3.0, 4.0) == 10.0
    assert fma_f32(-1.5, 0.005, 0.0) == f32(-1.5 * f32(0.005))


def test_make_arithmetic():
    assert isinstance(make_arithmetic(Accumulation.STEP_ROUNDED), StepRoundedArithmetic)
    assert isinstance(make_arithmetic(Accumulation.FUSED), FusedArithmetic)
    assert isinstance(make_arithmetic(Accumulation.FUSED), Arithmetic)
    with pytest.raises(ValueError):
        make_arithmetic(7)
