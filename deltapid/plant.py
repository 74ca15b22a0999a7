"""
First-order motor model for closed-loop simulation.

    dx/dt = Ku * y - lam * x

integrated with forward Euler at the gate period.
"""

from typing import Optional

from .arithmetic import Arithmetic, StepRoundedArithmetic, f32


class FirstOrderPlant:
    def __init__(
        self,
        ku: float = 50.0,
        lam: float = 5.0,
        ts: float = 0.005,
        initial_speed: float = 0.0,
        arithmetic: Optional[Arithmetic] = None,
    ):
        """
        Args:
            ku: Input gain, rad/s^2 per volt
            lam: Decay rate, 1/s
            ts: Integration step in seconds
            initial_speed: Starting angular velocity, rad/s
            arithmetic: Rounding strategy for the update
        """
        self.ku = f32(ku)
        self.lam = f32(lam)
        self.ts = f32(ts)
        self.arithmetic = arithmetic or StepRoundedArithmetic()
        self._initial_speed = f32(initial_speed)
        self.x_true = self._initial_speed

    def update(self, y: float) -> float:
        """Apply drive voltage y for one step and return the new true speed."""
        ar = self.arithmetic
        accel = ar.add(ar.mul(self.ku, y), -ar.mul(self.lam, self.x_true))
        self.x_true = ar.add(self.x_true, ar.mul(self.ts, accel))
        return self.x_true

    def reset(self) -> None:
        self.x_true = self._initial_speed
