#!/usr/bin/env python3
"""
Register map and download tests against the in-memory register bank.
"""

import math

import pytest

from deltapid import ConfigurationError, MemoryRegisterBank, Register, RegisterBank, f32
from deltapid.registers import (
    float_to_word,
    read_coefficients,
    read_f32,
    read_speed_count,
    rpm_to_radps,
    status_to_spdcnt,
    word_to_float,
    write_controller_registers,
)


def test_register_offsets():
    assert Register.A0 == 0x00
    assert Register.C7B == 0x20
    assert Register.YSAT == 0x24
    assert Register.RECIP_YSAT == 0x28
    assert Register.W_TARGET == 0x2C
    assert Register.STATUS == 0x30


def test_word_conversions():
    assert float_to_word(12.0) == 0x41400000
    assert float_to_word(-2.0) == 0xC0000000
    assert word_to_float(0x3DAAAAAB) == f32(1.0 / 12.0)
    assert word_to_float(float_to_word(f32(0.1))) == f32(0.1)


@pytest.mark.parametrize(
    "raw,expected",
    [(0x0000, 0), (0x7FFF, 32767), (0x8000, -32768), (0xFFFF, -1), (0x12348000, -32768), (0xABCD0005, 5)],
)
def test_status_sign_extension(raw, expected):
    assert status_to_spdcnt(raw) == expected


def test_rpm_conversion():
    assert rpm_to_radps(60.0) == pytest.approx(2.0 * math.pi, rel=1e-6)
    assert rpm_to_radps(0.0) == 0.0


def test_download_and_read_back(coeffs):
    bank = MemoryRegisterBank()
    assert isinstance(bank, RegisterBank)

    readback = write_controller_registers(bank, coeffs, y_sat=12.0, w_target=100.0)
    assert readback == 100.0
    assert read_coefficients(bank) == coeffs
    assert bank.read32(Register.C1) == 0x3DE21965
    assert bank.read32(Register.YSAT) == 0x41400000
    assert bank.read32(Register.RECIP_YSAT) == 0x3DAAAAAB
    assert read_f32(bank, Register.W_TARGET) == 100.0
    assert "C7B=0xB8A50594" in str(bank)


def test_download_rejects_invalid_values(coeffs):
    bank = MemoryRegisterBank()
    with pytest.raises(ConfigurationError):
        write_controller_registers(bank, coeffs, y_sat=0.0, w_target=100.0)
    with pytest.raises(ConfigurationError):
        write_controller_registers(bank, coeffs, y_sat=12.0, w_target=float("nan"))
    with pytest.raises(ConfigurationError):
        write_controller_registers(bank, coeffs._replace(c2=float("inf")), 12.0, 100.0)


def test_status_is_read_only():
    bank = MemoryRegisterBank()
    with pytest.raises(PermissionError):
        bank.write32(Register.STATUS, 1)


def test_latched_speed_count():
    bank = MemoryRegisterBank()
    bank.latch_speed_count(-5)
    assert bank.read32(Register.STATUS) == 0xFFFB
    assert read_speed_count(bank) == -5
    bank.latch_speed_count(1234)
    assert read_speed_count(bank) == 1234


def test_unknown_offset():
    bank = MemoryRegisterBank()
    with pytest.raises(KeyError):
        bank.read32(0x34)
    with pytest.raises(KeyError):
        bank.write32(0x02, 0)
