"""
ReferencePID - separated P/I/D form of the same control law.

Used as an oracle for DeltaPID: identical tuning, conventional structure.

    P[n] = Kp * (b*w - x)
    D[n] = a*Td/(a*Td+Ts) * D[n-1] + Kp*Td/(a*Td+Ts) * (c*dw - dx)
    I[n] = I[n-1] + Ki * (e + Kb*e_sat[n-1]) * Ts
    y    = clamp(P + I + D, -YSAT, +YSAT)

Back-calculation uses only the previous saturation error. Expanding this
form into increments gives the delta-form coefficients, so both controllers
must agree to within float32 rounding.
"""

from typing import Optional

from .arithmetic import Arithmetic, FusedArithmetic, f32
from .coefficients import PidTuning
from .exceptions import ConfigurationError


class ReferencePID:
    """
    General PID with first-order derivative filter and single-tap anti-windup.

    Usage pattern:
        ref = ReferencePID(tuning, y_sat=12.0)
        y = ref.step(target_speed, measured_speed)
    """

    def __init__(
        self,
        tuning: PidTuning,
        y_sat: float = 12.0,
        arithmetic: Optional[Arithmetic] = None,
    ):
        tuning.validate()
        if not y_sat > 0:
            raise ConfigurationError("Saturation limit must be positive")

        self.arithmetic = arithmetic or FusedArithmetic()
        self.tuning = tuning

        self._kp = f32(tuning.kp)
        self._ki = f32(tuning.ki)
        self._kd = f32(tuning.kd)
        self._a = f32(1.0 / tuning.n) if tuning.n > 0 else 0.0
        self._b = f32(tuning.b)
        self._c = f32(tuning.c)
        self._kb = f32(tuning.kb)
        self._ts = f32(tuning.ts)
        self._out_min = -f32(y_sat)
        self._out_max = f32(y_sat)

        self.reset()

    def reset(self) -> None:
        """Reset all internal state variables to zero."""
        self._integral = 0.0
        self._d_term = 0.0
        self._p_term = 0.0
        self._setpoint_prev = 0.0
        self._measurement_prev = 0.0
        self._unsat_prev = 0.0
        self._sat_prev = 0.0

    def step(self, setpoint: float, measurement: float) -> float:
        ar = self.arithmetic
        w = f32(setpoint)
        x = f32(measurement)

        error = ar.sub(w, x)
        self._p_term = ar.mul(self._kp, ar.sub(ar.mul(self._b, w), x))

        td = ar.div(self._kd, self._kp) if self._kp > 1e-12 else 0.0
        a_td = ar.mul(self._a, td)
        common = ar.add(a_td, self._ts)
        feedback = ar.div(a_td, common)
        gain = ar.div(ar.mul(self._kp, td), common)

        d_input = ar.sub(
            ar.mul(self._c, ar.sub(w, self._setpoint_prev)),
            ar.sub(x, self._measurement_prev),
        )
        self._d_term = ar.accumulate(((feedback, self._d_term), (gain, d_input)))

        sat_error = ar.sub(self._sat_prev, self._unsat_prev)
        i_rate = ar.mul(self._ki, ar.add(error, ar.mul(self._kb, sat_error)))
        self._integral = ar.add(self._integral, ar.mul(i_rate, self._ts))

        unsat = ar.add(ar.add(self._p_term, self._integral), self._d_term)
        sat = max(self._out_min, min(unsat, self._out_max))

        self._setpoint_prev = w
        self._measurement_prev = x
        self._unsat_prev = unsat
        self._sat_prev = sat
        return sat

    def get_output(self) -> float:
        return self._sat_prev

    def get_p_term(self) -> float:
        return self._p_term

    def get_i_term(self) -> float:
        return self._integral

    def get_d_term(self) -> float:
        return self._d_term

    def __repr__(self) -> str:
        return (
            f"ReferencePID(Kp={self._kp:.4f}, Ki={self._ki:.4f}, Kd={self._kd:.5f}, "
            f"YSAT={self._out_max:.3f})"
        )
