"""
deltapid - Bit-faithful software model of a hardware delta-form PID speed controller

Derives the FP32 register coefficients of an incremental two-degree-of-freedom
PID with two-tap anti-windup, reproduces the controller datapath and the
quantized encoder in single precision, and validates the reproduction against
a separated reference controller or a captured golden trace.

Licensed under the MIT License.
"""

from .arithmetic import (
    Accumulation,
    Arithmetic,
    FusedArithmetic,
    StepRoundedArithmetic,
    f32,
    fma_f32,
    make_arithmetic,
)
from .coefficients import DiscreteCoeffs, PidTuning, derive_coefficients, time_constants
from .controller_base import SpeedController
from .delta_pid import ControllerState, DeltaPID
from .encoder import CountOverflow, EncoderConfig, EncoderQuantizer, EncoderSample
from .exceptions import ConfigurationError, CountOverflowError, DeltaPIDError, TraceFileError
from .harness import ComparisonReport, TraceRecord, ValidationHarness, compare_sequences
from .plant import FirstOrderPlant
from .reference_pid import ReferencePID
from .registers import MemoryRegisterBank, Register, RegisterBank
from .trace import load_trace, save_trace

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    "DeltaPID",
    "ReferencePID",
    "SpeedController",
    "ControllerState",
    "PidTuning",
    "DiscreteCoeffs",
    "derive_coefficients",
    "time_constants",
    "EncoderQuantizer",
    "EncoderConfig",
    "EncoderSample",
    "CountOverflow",
    "FirstOrderPlant",
    "ValidationHarness",
    "TraceRecord",
    "ComparisonReport",
    "compare_sequences",
    "load_trace",
    "save_trace",
    "Accumulation",
    "Arithmetic",
    "StepRoundedArithmetic",
    "FusedArithmetic",
    "make_arithmetic",
    "f32",
    "fma_f32",
    "Register",
    "RegisterBank",
    "MemoryRegisterBank",
    "DeltaPIDError",
    "ConfigurationError",
    "TraceFileError",
    "CountOverflowError",
]
