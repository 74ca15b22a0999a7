"""
Validation harness - closed-loop simulation and comparison.

Drives the first-order plant through the encoder model and the delta-form
controller for a fixed number of gate periods, recording every sample.
Two comparison modes are provided:

- controller vs controller: DeltaPID against ReferencePID on identical inputs
- controller vs golden trace: DeltaPID output against a captured sequence

Neither mode stops at the first bad sample; reports aggregate the mismatch
count and the worst sample so the whole trace stays visible.
"""

from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from loguru import logger

from .arithmetic import Accumulation, Arithmetic, StepRoundedArithmetic, f32, make_arithmetic
from .coefficients import PidTuning, derive_coefficients
from .config import tuning_from_config
from .delta_pid import DeltaPID
from .encoder import CountOverflow, EncoderConfig, EncoderQuantizer
from .plant import FirstOrderPlant
from .reference_pid import ReferencePID


class TraceRecord(NamedTuple):
    n: int
    t: float  # Time, seconds
    w: float  # Setpoint, rad/s
    x_true: float  # True plant speed, rad/s
    x_meas: float  # Quantized measured speed, rad/s
    spdcnt: int  # Encoder count delta
    y: float  # Saturated output of the controller under test, V
    duty: float  # |y| / YSAT in percent
    y_alt: Optional[float] = None  # Reference controller output, when compared


class SampleError(NamedTuple):
    n: int
    actual: float
    expected: float
    abs_err: float
    rel_err: float
    ok: bool


class ComparisonReport:
    """Aggregated outcome of an element-wise comparison."""

    def __init__(self, samples: List[SampleError], abs_tol: float, rel_tol: Optional[float]):
        self.samples = samples
        self.abs_tol = abs_tol
        self.rel_tol = rel_tol

        self.mismatches = [s for s in samples if not s.ok]
        worst = max(samples, key=lambda s: s.abs_err, default=None)
        self.max_abs_err = worst.abs_err if worst else 0.0
        self.max_rel_err = worst.rel_err if worst else 0.0
        self.max_err_index = worst.n if worst else -1

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def mismatch_count(self) -> int:
        return len(self.mismatches)

    def first_mismatches(self, count: int) -> List[SampleError]:
        return self.mismatches[:count]

    @property
    def passed(self) -> bool:
        return self.sample_count > 0 and self.mismatch_count == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def summary(self) -> str:
        tol = f"ABS_TOL={self.abs_tol:g}"
        if self.rel_tol is not None:
            tol += f", REL_TOL={self.rel_tol:g}"
        return (
            f"Samples: {self.sample_count}  PASS={self.sample_count - self.mismatch_count} "
            f"FAIL={self.mismatch_count} ({tol})  max_abs_err={self.max_abs_err:.10g} "
            f"max_rel_err={self.max_rel_err:.10g} at n={self.max_err_index}"
        )

    def __repr__(self) -> str:
        return f"ComparisonReport(passed={self.passed}, {self.summary()})"


def compare_sequences(
    actual: Sequence[float],
    expected: Sequence[float],
    abs_tol: float,
    rel_tol: Optional[float] = None,
) -> ComparisonReport:
    """
    Compare two sequences sample by sample over their common length.

    A sample passes when abs_err <= abs_tol, or rel_err <= rel_tol when a
    relative tolerance is given. The relative error is taken against the
    expected value with a 1e-12 floor.
    """
    if len(actual) != len(expected):
        logger.warning(
            f"Length mismatch: actual={len(actual)}, expected={len(expected)}, "
            f"comparing {min(len(actual), len(expected))}"
        )

    samples = []
    for n, (a, e) in enumerate(zip(actual, expected)):
        abs_err = abs(a - e)
        rel_err = abs_err / max(1e-12, abs(e))
        ok = abs_err <= abs_tol or (rel_tol is not None and rel_err <= rel_tol)
        samples.append(SampleError(n, a, e, abs_err, rel_err, ok))
    return ComparisonReport(samples, abs_tol, rel_tol)


class ValidationHarness:
    """
    Closed-loop simulation of plant, encoder and controller.

    Usage:
        harness = ValidationHarness(tuning, steps=100)
        trace = harness.run()
        report = harness.compare_golden(load_trace("y_ref.txt"))
        sys.exit(report.exit_code)
    """

    def __init__(
        self,
        tuning: PidTuning,
        target_speed: float = 100.0,
        y_sat: float = 12.0,
        steps: int = 100,
        ku: float = 50.0,
        lam: float = 5.0,
        encoder_config: EncoderConfig = EncoderConfig(),
        overflow: CountOverflow = CountOverflow.WRAP,
        arithmetic: Optional[Arithmetic] = None,
    ):
        """
        Args:
            tuning: Continuous tuning; its ts must match the encoder gate period
            target_speed: Constant setpoint, rad/s
            y_sat: Output saturation limit, V
            steps: Number of gate periods to simulate
            ku: Plant input gain
            lam: Plant decay rate
            encoder_config: Encoder geometry and gate frequency
            overflow: Encoder 16-bit overflow policy
            arithmetic: Rounding strategy for controller and plant
        """
        if steps <= 0:
            raise ValueError("steps must be positive")
        if abs(tuning.ts - encoder_config.ts) > 1e-12:
            logger.warning(
                f"Tuning Ts={tuning.ts} differs from encoder gate period {encoder_config.ts}"
            )

        self.tuning = tuning
        self.target_speed = target_speed
        self.y_sat = y_sat
        self.steps = steps
        self.ku = ku
        self.lam = lam
        self.encoder_config = encoder_config
        self.overflow = overflow
        self.arithmetic = arithmetic or StepRoundedArithmetic()

        self.coeffs = derive_coefficients(tuning)
        self._ops = StepRoundedArithmetic()
        self.trace: List[TraceRecord] = []

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ValidationHarness":
        """Build a harness from a validated configuration dictionary."""
        enc = config["encoder"]
        ctrl = config["controller"]
        encoder_config = EncoderConfig(int(enc["counts_per_rev"]), float(enc["gate_hz"]))
        return cls(
            tuning=tuning_from_config(config),
            target_speed=float(config["simulation"]["target_speed"]),
            y_sat=float(ctrl["y_sat"]),
            steps=int(config["simulation"]["steps"]),
            ku=float(config["plant"]["ku"]),
            lam=float(config["plant"]["lam"]),
            encoder_config=encoder_config,
            overflow=CountOverflow[enc["overflow"]],
            arithmetic=make_arithmetic(Accumulation[ctrl["accumulation"]]),
        )

    def make_controller(self) -> DeltaPID:
        return DeltaPID(self.coeffs, self.y_sat, self.arithmetic)

    def make_reference(self) -> ReferencePID:
        return ReferencePID(self.tuning, self.y_sat)

    def _duty(self, y: float, recip_y_sat: float) -> float:
        return self._ops.mul(self._ops.mul(abs(y), recip_y_sat), 100.0)

    def run(
        self,
        controller: Optional[DeltaPID] = None,
        reference: Optional[ReferencePID] = None,
    ) -> List[TraceRecord]:
        """
        Simulate the closed loop from zero initial state.

        The plant is always driven by the controller under test. When a
        reference controller is given it sees the same setpoint and
        measurement, and its output is recorded as y_alt.

        Returns:
            One TraceRecord per gate period
        """
        controller = controller or self.make_controller()
        controller.reset()
        if reference is not None:
            reference.reset()

        encoder = EncoderQuantizer(self.encoder_config, self.overflow)
        plant = FirstOrderPlant(self.ku, self.lam, encoder.ts, arithmetic=self.arithmetic)
        w = f32(self.target_speed)
        recip_y_sat = self._ops.div(1.0, self.y_sat)

        logger.info(
            f"Running closed loop: {self.steps} steps, Ts={encoder.ts:.6g}s, "
            f"target={w:.4f} rad/s, YSAT={self.y_sat}, arithmetic={self.arithmetic}"
        )

        self.trace = []
        for n in range(self.steps):
            t = self._ops.mul(float(n), encoder.ts)
            x_true = plant.x_true

            sample = encoder.sample(x_true)
            y = controller.step(w, sample.x_meas)
            y_alt = reference.step(w, sample.x_meas) if reference is not None else None

            self.trace.append(
                TraceRecord(
                    n, t, w, x_true, sample.x_meas, sample.spdcnt, y,
                    self._duty(y, recip_y_sat), y_alt,
                )
            )
            plant.update(y)

        logger.debug(f"Final state: x_true={plant.x_true:.6f}, {controller!r}")
        return self.trace

    def outputs(self) -> List[float]:
        """Controller outputs of the last run."""
        return [r.y for r in self.trace]

    def compare_controllers(
        self, abs_tol: float = 1e-3, rel_tol: float = 1e-3, max_report: int = 10
    ) -> ComparisonReport:
        """Run DeltaPID and ReferencePID side by side and compare every sample."""
        trace = self.run(reference=self.make_reference())
        report = compare_sequences(
            [r.y_alt for r in trace], [r.y for r in trace], abs_tol, rel_tol
        )
        self._log_report("Delta vs reference", report, max_report)
        return report

    def compare_golden(
        self, reference: Sequence[float], tol: float = 1e-3, max_report: int = 10
    ) -> ComparisonReport:
        """Run the loop and compare the outputs with a captured reference sequence."""
        trace = self.run()
        report = compare_sequences([r.y for r in trace], list(reference), tol)
        self._log_report("Golden trace", report, max_report)
        return report

    def _log_report(self, title: str, report: ComparisonReport, max_report: int) -> None:
        for s in report.first_mismatches(max_report):
            logger.warning(
                f"FAIL n={s.n} actual={s.actual:.10g} expected={s.expected:.10g} "
                f"|err|={s.abs_err:.10g}"
            )
        if report.passed:
            logger.info(f"{title}: ALL PASS. {report.summary()}")
        else:
            logger.warning(f"{title}: FAIL EXISTS. {report.summary()}")


def format_trace(trace: Sequence[TraceRecord]) -> str:
    """Render a trace as the fixed-width table printed by the simulation."""
    with_alt = any(r.y_alt is not None for r in trace)
    header = "    t[s] |  w(Tgt) |    x_true |    x_meas | spdcnt |         y[V] | Duty[%]"
    if with_alt:
        header += " |     y_ref[V]"
    lines = [header]
    for r in trace:
        line = (
            f"{r.t:8.4f} | {r.w:7.3f} | {r.x_true:9.5f} | {r.x_meas:9.5f} | "
            f"{r.spdcnt:6d} | {r.y:12.9f} | {r.duty:7.3f}"
        )
        if with_alt:
            line += f" | {r.y_alt:12.9f}"
        lines.append(line)
    return "\n".join(lines)
