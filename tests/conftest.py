"""
Shared fixtures for the deltapid test suite.
"""

import sys
from pathlib import Path
from typing import List

import pytest
from loguru import logger

from deltapid import PidTuning, derive_coefficients

DATA_DIR = Path(__file__).parent / "data"

# Coefficient words programmed into the hardware for the representative tuning
HARDWARE_COEFF_WORDS = [
    0x3C864B8B,
    0x3DE21965,
    0xBDE4FC8E,
    0x3AEC5C01,
    0xBEA75178,
    0x3F0B6AB1,
    0xBE5F6EF6,
    0x3B9D4952,
    0xB8A505D6,
]


@pytest.fixture
def tuning() -> PidTuning:
    """Representative tuning: Kp=0.11, Ki=0.08, Kd=0.0011, N=120, b=1, c=0, Kb=12, 200 Hz."""
    return PidTuning(kp=0.11, ki=0.08, kd=0.0011, n=120.0, b=1.0, c=0.0, kb=12.0, ts=0.005)


@pytest.fixture
def coeffs(tuning):
    return derive_coefficients(tuning)


@pytest.fixture
def golden_path() -> Path:
    return DATA_DIR / "y_values_step1_to_100.txt"


@pytest.fixture
def loguru_messages() -> List[str]:
    """Collect loguru messages at WARNING and above."""
    messages: List[str] = []
    handler_id = logger.add(messages.append, level="WARNING", format="{message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def restore_logger():
    """Put back a plain stderr sink after a test that reconfigures logging."""
    yield
    logger.remove()
    logger.add(sys.__stderr__, level="INFO")
