from typing import Protocol, runtime_checkable

@runtime_checkable
class SpeedController(Protocol):
    def step(self, setpoint: float, measurement: float) -> float:
        """Advance one sample period and return the saturated output"""
        ...

    def reset(self) -> None:
        """Clear all internal history"""
        ...

    def get_output(self) -> float:
        """Get the most recent saturated output"""
        ...
