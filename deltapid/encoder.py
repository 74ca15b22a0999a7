"""
Encoder quantizer - model of the fixed-gate digital tachometer.

The hardware latches a quadrature count every gate period and reports the
count difference as a signed 16-bit speed count (spdcnt). The model keeps the
continuous shaft angle and the last integer count, so quantization error is
carried into the next sample instead of being dropped:

    theta    += x_true * Ts                  (single-rounding FMA)
    C_now     = floor(theta / rad_per_count)
    spdcnt    = C_now - C_prev
    x_meas    = spdcnt * rad_per_s_per_count
"""

import math
from enum import IntEnum
from typing import NamedTuple

from loguru import logger

from .arithmetic import StepRoundedArithmetic, f32, fma_f32
from .exceptions import ConfigurationError, CountOverflowError

SPDCNT_MIN = -0x8000
SPDCNT_MAX = 0x7FFF


class CountOverflow(IntEnum):
    """Handling of speed counts outside the signed 16-bit register range."""

    WRAP = 0  # Two's-complement wrap, as the status register reads back
    SATURATE = 1  # Clip to [-32768, 32767]
    RAISE = 2  # Raise CountOverflowError


class EncoderConfig(NamedTuple):
    """Encoder geometry and gate timing, fixed at startup."""

    counts_per_rev: int = 1336  # Quadrature (4x) counts per revolution
    gate_hz: float = 200.0  # Gate frequency; Ts = 1 / gate_hz

    def validate(self) -> None:
        if self.counts_per_rev <= 0:
            raise ConfigurationError("counts_per_rev must be positive")
        if not self.gate_hz > 0:
            raise ConfigurationError("gate_hz must be positive")

    @property
    def ts(self) -> float:
        """Gate period in seconds (double precision, used for coefficient derivation)."""
        return 1.0 / self.gate_hz

    @property
    def ts_f32(self) -> float:
        """Gate period rounded to float32, as used by the datapath."""
        return f32(self.ts)

    @property
    def rad_per_s_per_count(self) -> float:
        """Speed represented by one count per gate, rad/s (float32)."""
        return f32(2.0 * math.pi * self.gate_hz / self.counts_per_rev)

    @property
    def rpm_per_count(self) -> float:
        """Speed represented by one count per gate, RPM (float32)."""
        return f32(60.0 * self.gate_hz / self.counts_per_rev)


class EncoderSample(NamedTuple):
    spdcnt: int  # Signed per-gate count delta, as the register reports it
    x_meas: float  # Quantized measured speed, rad/s
    count: int  # Absolute integer count floor(theta / rad_per_count)
    overflowed: bool  # True when the raw delta did not fit in 16 bits


class EncoderQuantizer:
    """
    Stateful encoder model producing quantized speed measurements.

    Args:
        config: Encoder geometry and gate frequency
        overflow: Policy for deltas outside the 16-bit register
        fused_integration: Integrate the angle with a single-rounding FMA
            (hardware match) instead of a rounded multiply then add
    """

    def __init__(
        self,
        config: EncoderConfig = EncoderConfig(),
        overflow: CountOverflow = CountOverflow.WRAP,
        fused_integration: bool = True,
    ):
        config.validate()
        self.config = config
        self.overflow = overflow
        self.fused_integration = fused_integration
        self._ops = StepRoundedArithmetic()

        self.ts = config.ts_f32
        self.int_to_rads = config.rad_per_s_per_count
        self.rad_per_count = self._ops.mul(self.int_to_rads, self.ts)

        self.theta_rad = 0.0
        self.c_prev = 0
        self.overflow_count = 0

    def reset(self) -> None:
        """Zero the accumulated angle and the carried count."""
        self.theta_rad = 0.0
        self.c_prev = 0
        self.overflow_count = 0

    def sample(self, x_true: float) -> EncoderSample:
        """
        Latch one gate period of rotation at true speed x_true (rad/s).

        Returns:
            EncoderSample with the register speed count and measured speed

        Raises:
            CountOverflowError: If the delta exceeds 16 bits and the policy is RAISE
        """
        if self.fused_integration:
            self.theta_rad = fma_f32(x_true, self.ts, self.theta_rad)
        else:
            self.theta_rad = self._ops.add(self.theta_rad, self._ops.mul(x_true, self.ts))

        c_real = self._ops.div(self.theta_rad, self.rad_per_count)
        c_now = math.floor(c_real)

        raw = c_now - self.c_prev
        self.c_prev = c_now

        spdcnt, overflowed = self._limit(raw)
        x_meas = self._ops.mul(float(spdcnt), self.int_to_rads)
        return EncoderSample(spdcnt, x_meas, c_now, overflowed)

    def _limit(self, raw: int):
        if SPDCNT_MIN <= raw <= SPDCNT_MAX:
            return raw, False

        self.overflow_count += 1
        if self.overflow == CountOverflow.RAISE:
            raise CountOverflowError(
                f"Speed count {raw} outside 16-bit range [{SPDCNT_MIN}, {SPDCNT_MAX}]"
            )
        if self.overflow == CountOverflow.SATURATE:
            limited = max(SPDCNT_MIN, min(SPDCNT_MAX, raw))
        else:
            limited = ((raw - SPDCNT_MIN) & 0xFFFF) + SPDCNT_MIN
        logger.warning(f"Speed count {raw} overflows 16 bits, reported as {limited}")
        return limited, True

    def counts_to_rpm(self, spdcnt: int) -> float:
        return spdcnt * self.config.rpm_per_count

    def __repr__(self) -> str:
        return (
            f"EncoderQuantizer(CPR={self.config.counts_per_rev}, gate={self.config.gate_hz}Hz, "
            f"rad_per_count={self.rad_per_count:.9g})"
        )
