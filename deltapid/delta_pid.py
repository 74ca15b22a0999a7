"""
DeltaPID - Incremental 2-DOF PID with two-tap anti-windup

This module reproduces the FP32 datapath of the hardware speed controller. The
recurrence produces an increment dy that is accumulated onto the previous
unsaturated output:

    dy[n] = a0*dy[n-1]
          + c1*w[n] + c2*w[n-1] + c3*w[n-2]
          + c4*x[n] + c5*x[n-1] + c6*x[n-2]
          + c7a*e_sat[n-1] + c7b*e_sat[n-2]

    y_unsat[n] = y_unsat[n-1] + dy[n]
    y_sat[n]   = clamp(y_unsat[n], -YSAT, +YSAT)

where e_sat = y_sat - y_unsat. Anti-windup has no integrator to freeze: the
clipping error of the previous two cycles is fed back through c7a/c7b and pulls
the accumulator back into the achievable range.
"""

from typing import Optional

from .arithmetic import Arithmetic, StepRoundedArithmetic, f32
from .coefficients import DiscreteCoeffs
from .exceptions import ConfigurationError


class ControllerState:
    """
    Two-deep history of the delta-form recurrence.

    Every history is an explicit pair of slots; the control law never looks
    further back than two samples.
    """

    __slots__ = (
        "dy1",
        "w1",
        "w2",
        "x1",
        "x2",
        "y_unsat_1",
        "y_unsat_2",
        "y_sat_1",
        "y_sat_2",
    )

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Zero every history slot."""
        self.dy1 = 0.0
        self.w1 = 0.0
        self.w2 = 0.0
        self.x1 = 0.0
        self.x2 = 0.0
        self.y_unsat_1 = 0.0
        self.y_unsat_2 = 0.0
        self.y_sat_1 = 0.0
        self.y_sat_2 = 0.0

    def shift(self, dy: float, w: float, x: float, y_unsat: float, y_sat: float) -> None:
        """Push the newest sample into slot 1, moving slot 1 into slot 2."""
        self.dy1 = dy
        self.w2 = self.w1
        self.w1 = w
        self.x2 = self.x1
        self.x1 = x
        self.y_unsat_2 = self.y_unsat_1
        self.y_unsat_1 = y_unsat
        self.y_sat_2 = self.y_sat_1
        self.y_sat_1 = y_sat

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.__slots__}

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v:.6g}" for k, v in self.as_dict().items())
        return f"ControllerState({fields})"


class DeltaPID:
    """
    Delta-form PID controller with the hardware accumulation order.

    The arithmetic strategy decides how the nine-term sum is rounded:
    StepRoundedArithmetic (default) rounds after every multiply and add like
    the non-fused hardware pipeline, FusedArithmetic rounds once.

    Usage pattern:
        pid = DeltaPID(derive_coefficients(tuning), y_sat=12.0)

        # Once per gate period:
        y = pid.step(target_speed, measured_speed)
    """

    def __init__(
        self,
        coeffs: DiscreteCoeffs,
        y_sat: float = 12.0,
        arithmetic: Optional[Arithmetic] = None,
    ):
        """
        Initialize the controller.

        Args:
            coeffs: Coefficient set derived from the tuning
            y_sat: Symmetric output saturation limit
            arithmetic: Rounding strategy for the recurrence
        """
        self.arithmetic = arithmetic or StepRoundedArithmetic()
        self._coeffs = coeffs
        self._y_sat = 0.0
        self.state = ControllerState()

        self.set_saturation(y_sat)
        self.load_coefficients(coeffs)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup."""
        self.reset()

    def load_coefficients(self, coeffs: DiscreteCoeffs) -> None:
        """
        Load a new coefficient set (coefficient-load event).

        History is kept so a retune takes effect on the next step without a
        bump.

        Raises:
            ConfigurationError: If any coefficient is NaN or infinite
        """
        if not coeffs.is_finite():
            raise ConfigurationError(f"Coefficients must be finite: {coeffs}")
        self._coeffs = DiscreteCoeffs(*(f32(v) for v in coeffs))

    def set_saturation(self, y_sat: float) -> None:
        """Set the symmetric output limit +/-YSAT."""
        if not y_sat > 0:
            raise ConfigurationError("Saturation limit must be positive")
        self._y_sat = f32(y_sat)

    def reset(self) -> None:
        """Reset all history to zero."""
        self.state.reset()

    def step(self, setpoint: float, measurement: float) -> float:
        """
        Advance the recurrence by one sample period.

        Args:
            setpoint: Target speed w[n]
            measurement: Quantized measured speed x[n]

        Returns:
            Saturated controller output y_sat[n]
        """
        ar = self.arithmetic
        s = self.state
        k = self._coeffs
        w = f32(setpoint)
        x = f32(measurement)

        e_sat_1 = ar.add(s.y_sat_1, -s.y_unsat_1)
        e_sat_2 = ar.add(s.y_sat_2, -s.y_unsat_2)

        # Order matches the serial MAC in the datapath
        dy = ar.accumulate(
            (
                (k.a0, s.dy1),
                (k.c1, w),
                (k.c2, s.w1),
                (k.c3, s.w2),
                (k.c4, x),
                (k.c5, s.x1),
                (k.c6, s.x2),
                (k.c7a, e_sat_1),
                (k.c7b, e_sat_2),
            )
        )

        y_unsat = ar.add(s.y_unsat_1, dy)
        y_sat = self._clamp(y_unsat)

        s.shift(dy, w, x, y_unsat, y_sat)
        return y_sat

    def _clamp(self, value: float) -> float:
        return max(-self._y_sat, min(self._y_sat, value))

    # Query methods
    def get_output(self) -> float:
        """Get the most recent saturated output."""
        return self.state.y_sat_1

    def get_unsaturated_output(self) -> float:
        """Get the most recent unsaturated accumulator value."""
        return self.state.y_unsat_1

    def get_saturation_error(self) -> float:
        """Get y_sat - y_unsat of the most recent step."""
        return self.state.y_sat_1 - self.state.y_unsat_1

    def get_coeffs(self) -> DiscreteCoeffs:
        return self._coeffs

    def get_saturation(self) -> float:
        return self._y_sat

    def is_saturated(self) -> bool:
        return self.state.y_sat_1 != self.state.y_unsat_1

    def __repr__(self) -> str:
        return (
            f"DeltaPID(YSAT={self._y_sat:.3f}, arithmetic={self.arithmetic}, "
            f"y={self.state.y_sat_1:.6f})"
        )
