"""
Coefficient derivation for the delta-form PID datapath.

Converts continuous-time tuning (Kp, Ki, Kd, N, b, c, Kb) into the nine FP32
coefficients loaded into the controller registers. All intermediate values
are computed in double precision with the same operand order as the hardware
driver, then rounded to float32 once per coefficient.
"""

import math
from typing import List, NamedTuple, Tuple

import numpy as np
from loguru import logger

from .arithmetic import f32
from .exceptions import ConfigurationError


class PidTuning(NamedTuple):
    """Continuous-time 2-DOF PID tuning with derivative filter and anti-windup gain."""

    kp: float  # Proportional gain
    ki: float  # Integral gain (0 disables the integral path)
    kd: float  # Derivative gain
    n: float  # Derivative filter order (pole a = 1/N)
    b: float  # Proportional setpoint weight
    c: float  # Derivative setpoint weight
    kb: float  # Anti-windup back-calculation gain
    ts: float  # Sample period in seconds

    def validate(self) -> None:
        """
        Check that every parameter is a finite number.

        Raises:
            ConfigurationError: If any parameter is NaN or infinite
        """
        for name, value in self._asdict().items():
            if not math.isfinite(value):
                raise ConfigurationError(f"Tuning parameter {name} must be finite, got {value}")


class DiscreteCoeffs(NamedTuple):
    """The nine FP32 coefficients of the delta-form recurrence, in register order."""

    a0: float
    c1: float
    c2: float
    c3: float
    c4: float
    c5: float
    c6: float
    c7a: float
    c7b: float

    def to_words(self) -> List[int]:
        """Return the raw IEEE-754 bit patterns in register order."""
        return [int(w) for w in np.asarray(self, dtype=np.float32).view(np.uint32)]

    @classmethod
    def from_words(cls, words) -> "DiscreteCoeffs":
        """Rebuild a coefficient set from nine raw 32-bit register words."""
        words = list(words)
        if len(words) != len(cls._fields):
            raise ConfigurationError(
                f"Expected {len(cls._fields)} coefficient words, got {len(words)}"
            )
        values = np.asarray(words, dtype=np.uint32).view(np.float32)
        return cls(*(float(v) for v in values))

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self)

    def __str__(self) -> str:
        return ", ".join(f"{name}={value:.9g}" for name, value in zip(self._fields, self))


def time_constants(kp: float, ki: float, kd: float, n: float) -> Tuple[float, float, float]:
    """
    Convert gains into time constants and the derivative filter pole.

    Returns:
        Tuple of (Ti, Td, a). Ti is infinite when there is no integral action,
        Td is 0 when Kp is 0, and a is 0 when N is not positive.
    """
    ti = (kp / ki) if (ki > 0.0 and kp > 0.0) else math.inf
    td = (kd / kp) if kp > 0.0 else 0.0
    a = (1.0 / n) if n > 0.0 else 0.0
    return ti, td, a


def derive_coefficients(tuning: PidTuning) -> DiscreteCoeffs:
    """
    Derive the delta-form coefficients from continuous tuning.

    Degenerate tunings (Ki=0, Kp=0, N<=0, Ts+a*Td<=0) fall back to zero
    terms rather than producing NaN or infinity.

    Args:
        tuning: Continuous-time tuning and sample period

    Returns:
        Coefficient set rounded to float32

    Raises:
        ConfigurationError: If a tuning parameter is not finite
    """
    tuning.validate()
    kp, ki, b, c, kb, ts = tuning.kp, tuning.ki, tuning.b, tuning.c, tuning.kb, tuning.ts
    ti, td, a = time_constants(kp, ki, tuning.kd, tuning.n)

    den = ts + a * td
    ts_over_ti = (ts / ti) if math.isfinite(ti) else 0.0
    den_ok = den > 0.0
    if not den_ok:
        logger.warning(f"Degenerate tuning: Ts + a*Td = {den} <= 0, 1/den terms set to 0")

    c0 = ((a * td) / den) if den_ok else 0.0

    c1 = kp * (b + ts_over_ti + ((td * c) / den if den_ok else 0.0))
    c2 = (
        -kp * (b * (ts + 2.0 * a * td) + (a * td * ts_over_ti) + (2.0 * td * c)) / den
        if den_ok
        else 0.0
    )
    c3 = (kp * td * (a * b + c)) / den if den_ok else 0.0
    c4 = -kp * (1.0 + ts_over_ti + ((td / den) if den_ok else 0.0))
    c5 = (
        kp * (ts + 2.0 * a * td + (a * td * ts_over_ti) + (2.0 * td)) / den
        if den_ok
        else 0.0
    )
    c6 = -kp * (td * (a + 1.0)) / den if den_ok else 0.0

    # Second anti-windup tap is tied to the first through the filter pole
    c7a = ki * kb * ts
    c7b = -c7a * c0

    coeffs = DiscreteCoeffs(*(f32(v) for v in (c0, c1, c2, c3, c4, c5, c6, c7a, c7b)))
    logger.debug(f"Derived coefficients: {coeffs}")
    return coeffs
