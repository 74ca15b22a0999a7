"""
Command line front end.

    deltapid coeffs [--interactive]
    deltapid simulate [--steps N] [--plot out.png] [--save-trace y.txt]
    deltapid compare
    deltapid golden y_values.txt

Exit status: 0 when every compared sample is within tolerance, 1 when any
sample fails, 2 for configuration, trace file or encoder overflow errors.
"""

import argparse
import sys
from typing import Callable, List, NamedTuple, Optional

import numpy as np
from loguru import logger

from .coefficients import PidTuning, derive_coefficients
from .config import default_config, load_config, tuning_from_config, validate_config
from .encoder import EncoderConfig
from .exceptions import ConfigurationError, DeltaPIDError
from .harness import ValidationHarness, format_trace
from .registers import float_to_word, rpm_to_radps
from .trace import load_trace, save_trace

EXIT_ERROR = 2


class TuningInput(NamedTuple):
    tuning: PidTuning
    rpm_target: float


def ask_float(
    prompt: str,
    input_func: Optional[Callable[[str], str]] = None,
    print_func: Optional[Callable[[str], None]] = None,
) -> float:
    """Prompt until the reply parses as a number."""
    input_func = input_func or input
    print_func = print_func or print
    while True:
        try:
            line = input_func(prompt).strip()
        except EOFError:
            raise ConfigurationError(f"Input ended while waiting for {prompt.strip()!r}")
        if not line:
            continue
        try:
            return float(line.split()[0])
        except ValueError:
            print_func("  (please enter a number)")


def prompt_tuning(
    ts: float,
    input_func: Optional[Callable[[str], str]] = None,
    print_func: Optional[Callable[[str], None]] = None,
) -> TuningInput:
    """Ask for Kp, Ki, Kd, N, b, c, Kb and the target speed in RPM, in that order."""
    prompts = [
        "Kp: ",
        "Ki: ",
        "Kd: ",
        "N (D-filter, a=1/N): ",
        "b (P setpoint weight): ",
        "c (D setpoint weight): ",
        "Kb (anti-windup 1/s): ",
        "Target RPM: ",
    ]
    kp, ki, kd, n, b, c, kb, rpm = (ask_float(p, input_func, print_func) for p in prompts)
    return TuningInput(PidTuning(kp, ki, kd, n, b, c, kb, ts), rpm)


def setup_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="deltapid",
        description="Delta-form PID coefficient tool and closed-loop validation harness",
    )
    ap.add_argument("--config", type=str, default=None, help="YAML configuration file")
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    p_coeffs = sub.add_parser("coeffs", help="Derive and print register coefficients")
    p_coeffs.add_argument(
        "--interactive", action="store_true", help="Prompt for tuning and target RPM"
    )

    p_sim = sub.add_parser("simulate", help="Run the closed loop and print the trace")
    p_sim.add_argument("--steps", type=int, default=None, help="Override step count")
    p_sim.add_argument("--plot", type=str, default=None, help="Write a PNG plot")
    p_sim.add_argument("--save-trace", type=str, default=None, help="Write outputs to a file")

    sub.add_parser("compare", help="Compare delta-form and reference controllers")

    p_gold = sub.add_parser("golden", help="Compare against a golden output trace")
    p_gold.add_argument("trace", type=str, help="Reference trace file")
    return ap


def _print_coefficients(config: dict, interactive: bool) -> int:
    encoder_config = EncoderConfig(
        int(config["encoder"]["counts_per_rev"]), float(config["encoder"]["gate_hz"])
    )
    print(
        f"Gate={encoder_config.ts * 1e3:.3f} ms, CPR(quad)={encoder_config.counts_per_rev} "
        f"-> spdcnt: {encoder_config.rad_per_s_per_count:.6f} rad/s, "
        f"{encoder_config.rpm_per_count:.6f} RPM per count"
    )

    if interactive:
        entered = prompt_tuning(encoder_config.ts)
        tuning = entered.tuning
        w_target = rpm_to_radps(entered.rpm_target)
    else:
        tuning = tuning_from_config(config)
        w_target = float(config["simulation"]["target_speed"])

    coeffs = derive_coefficients(tuning)
    print("--- Coeffs to write (delta form + 2-tap AW) ---")
    for name, value in zip(coeffs._fields, coeffs):
        print(f"{name:>4} = {value:<16.9g} 0x{float_to_word(value):08X}")
    y_sat = float(config["controller"]["y_sat"])
    print(f"W_target(rad/s)={w_target:.6f}")
    recip_y_sat = float(np.float32(1.0) / np.float32(y_sat))
    print(f"YSAT={y_sat:.3f}  1/YSAT={recip_y_sat:.9g}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config) if args.config else default_config()

        if args.command == "coeffs":
            return _print_coefficients(config, args.interactive)

        if args.command == "simulate" and args.steps is not None:
            config["simulation"]["steps"] = args.steps
            validate_config(config)
        harness = ValidationHarness.from_config(config)
        cmp_cfg = config["comparison"]

        if args.command == "simulate":
            trace = harness.run()
            print(format_trace(trace))
            if args.save_trace:
                save_trace(args.save_trace, harness.outputs())
            if args.plot:
                from .plotting import plot_trace

                plot_trace(trace, args.plot)
                logger.info(f"Plot saved to {args.plot}")
            return 0

        if args.command == "compare":
            report = harness.compare_controllers(
                float(cmp_cfg["abs_tol"]), float(cmp_cfg["rel_tol"]), int(cmp_cfg["max_report"])
            )
            print(format_trace(harness.trace))
        else:
            golden = load_trace(args.trace)
            report = harness.compare_golden(
                golden, float(cmp_cfg["abs_tol"]), int(cmp_cfg["max_report"])
            )

        print(report.summary())
        print("==> ALL PASS" if report.passed else "==> FAIL EXISTS")
        return report.exit_code

    except DeltaPIDError as e:
        logger.error(str(e))
        return EXIT_ERROR


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
