"""
Register map of the PID controller peripheral.

All registers are 32 bits wide. Coefficients, limits and the target speed are
written as raw IEEE-754 single-precision bit patterns; the status register
carries the signed 16-bit speed count in its low half-word.
"""

import math
from enum import IntEnum
from typing import Dict, Protocol, runtime_checkable

import numpy as np
from loguru import logger

from .coefficients import DiscreteCoeffs
from .exceptions import ConfigurationError


class Register(IntEnum):
    """Byte offsets from the peripheral base address."""

    A0 = 0x00  # Derivative filter feedback
    C1 = 0x04
    C2 = 0x08
    C3 = 0x0C
    C4 = 0x10
    C5 = 0x14
    C6 = 0x18
    C7A = 0x1C  # Anti-windup tap 1
    C7B = 0x20  # Anti-windup tap 2
    YSAT = 0x24  # Output saturation, V
    RECIP_YSAT = 0x28  # 1 / YSAT
    W_TARGET = 0x2C  # Target speed, rad/s
    STATUS = 0x30  # Read-only, low 16 bits = spdcnt


COEFF_REGISTERS = (
    Register.A0,
    Register.C1,
    Register.C2,
    Register.C3,
    Register.C4,
    Register.C5,
    Register.C6,
    Register.C7A,
    Register.C7B,
)


def float_to_word(value: float) -> int:
    """Reinterpret a float32 as its 32-bit pattern."""
    return int(np.array(value, dtype=np.float32).view(np.uint32))


def word_to_float(word: int) -> float:
    """Reinterpret a 32-bit pattern as a float32."""
    return float(np.array(word & 0xFFFFFFFF, dtype=np.uint32).view(np.float32))


def status_to_spdcnt(raw: int) -> int:
    """Sign-extend the low 16 bits of the status register."""
    low = raw & 0xFFFF
    return low - 0x10000 if low & 0x8000 else low


def rpm_to_radps(rpm: float) -> float:
    """Convert RPM to rad/s in single precision."""
    return float(np.float32(rpm) * np.float32(2.0 * math.pi / 60.0))


@runtime_checkable
class RegisterBank(Protocol):
    def read32(self, offset: int) -> int:
        """Read a 32-bit register"""
        ...

    def write32(self, offset: int, value: int) -> None:
        """Write a 32-bit register"""
        ...


class MemoryRegisterBank(RegisterBank):
    """In-memory register file standing in for the memory-mapped peripheral."""

    def __init__(self):
        self._regs: Dict[int, int] = {int(r): 0 for r in Register}

    def read32(self, offset: int) -> int:
        if offset not in self._regs:
            raise KeyError(f"No register at offset 0x{offset:02X}")
        return self._regs[offset]

    def write32(self, offset: int, value: int) -> None:
        if offset == Register.STATUS:
            raise PermissionError("STATUS register is read-only")
        if offset not in self._regs:
            raise KeyError(f"No register at offset 0x{offset:02X}")
        self._regs[offset] = value & 0xFFFFFFFF

    def latch_speed_count(self, spdcnt: int) -> None:
        """Simulate the hardware latching a speed count into STATUS."""
        self._regs[Register.STATUS] = (self._regs[Register.STATUS] & 0xFFFF0000) | (
            spdcnt & 0xFFFF
        )

    def __str__(self):
        return "MemoryRegisterBank(" + ", ".join(
            f"{Register(k).name}=0x{v:08X}" for k, v in self._regs.items()
        ) + ")"


def write_f32(bank: RegisterBank, register: Register, value: float) -> None:
    bank.write32(int(register), float_to_word(value))


def read_f32(bank: RegisterBank, register: Register) -> float:
    return word_to_float(bank.read32(int(register)))


def write_controller_registers(
    bank: RegisterBank,
    coeffs: DiscreteCoeffs,
    y_sat: float,
    w_target: float,
) -> float:
    """
    Download a full coefficient set, saturation limits and target speed.

    Returns:
        Target speed read back from the W_TARGET register

    Raises:
        ConfigurationError: If y_sat is not positive or a value is not finite
    """
    if not y_sat > 0:
        raise ConfigurationError("Saturation limit must be positive")
    if not coeffs.is_finite() or not math.isfinite(w_target):
        raise ConfigurationError("Register values must be finite")

    for register, value in zip(COEFF_REGISTERS, coeffs):
        write_f32(bank, register, value)
    write_f32(bank, Register.YSAT, y_sat)
    write_f32(bank, Register.RECIP_YSAT, float(np.float32(1.0) / np.float32(y_sat)))
    write_f32(bank, Register.W_TARGET, w_target)

    readback = read_f32(bank, Register.W_TARGET)
    logger.info(f"Controller registers written, W_target readback: {readback:.6f}")
    return readback


def read_coefficients(bank: RegisterBank) -> DiscreteCoeffs:
    return DiscreteCoeffs.from_words(bank.read32(int(r)) for r in COEFF_REGISTERS)


def read_speed_count(bank: RegisterBank) -> int:
    return status_to_spdcnt(bank.read32(int(Register.STATUS)))
