"""
YAML configuration for the simulation harness and coefficient tools.

A missing configuration file is created with defaults that reproduce the
reference setup: 200 Hz gate, 1336 counts/rev, YSAT = 12 V, target 100 rad/s,
plant Ku = 50, lam = 5.
"""

import copy
import math
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from loguru import logger

from .arithmetic import Accumulation
from .coefficients import PidTuning
from .encoder import CountOverflow
from .exceptions import ConfigurationError

DEFAULT_CONFIG: Dict[str, Any] = {
    "tuning": {
        "kp": 0.11,
        "ki": 0.08,
        "kd": 0.0011,
        "n": 120.0,
        "b": 1.0,
        "c": 0.0,
        "kb": 12.0,
    },
    "encoder": {
        "counts_per_rev": 1336,
        "gate_hz": 200.0,
        "overflow": "WRAP",
    },
    "controller": {
        "y_sat": 12.0,
        "accumulation": "STEP_ROUNDED",
    },
    "plant": {
        "ku": 50.0,
        "lam": 5.0,
    },
    "simulation": {
        "steps": 100,
        "target_speed": 100.0,
    },
    "comparison": {
        "abs_tol": 1e-3,
        "rel_tol": 1e-3,
        "max_report": 10,
    },
}

_REQUIRED_KEYS = {section: list(values) for section, values in DEFAULT_CONFIG.items()}

_INT_KEYS = [("encoder", "counts_per_rev"), ("simulation", "steps"), ("comparison", "max_report")]
_FLOAT_KEYS = [
    (section, key)
    for section, values in DEFAULT_CONFIG.items()
    for key, value in values.items()
    if isinstance(value, float)
]
_POSITIVE_KEYS = [
    ("controller", "y_sat"),
    ("encoder", "gate_hz"),
    ("encoder", "counts_per_rev"),
    ("simulation", "steps"),
]


def default_config() -> Dict[str, Any]:
    """Return a fresh copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def _number(config: Dict[str, Any], section: str, key: str, kind) -> None:
    value = config[section][key]
    if isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key} must be a number, got {value!r}")
    try:
        number = kind(value)
    except (TypeError, ValueError, OverflowError):
        raise ConfigurationError(f"{section}.{key} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ConfigurationError(f"{section}.{key} must be finite, got {value!r}")


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate a loaded configuration structure.

    Raises:
        ConfigurationError: If a section or key is missing or a value is invalid
    """
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration must be a mapping")

    for section, keys in _REQUIRED_KEYS.items():
        if section not in config or not isinstance(config[section], dict):
            raise ConfigurationError(f"Missing required configuration section: {section}")
        for key in keys:
            if key not in config[section]:
                raise ConfigurationError(f"Missing required {section} parameter: {key}")

    if config["encoder"]["overflow"] not in CountOverflow.__members__:
        raise ConfigurationError(
            f"Unknown overflow policy: {config['encoder']['overflow']}"
        )
    if config["controller"]["accumulation"] not in Accumulation.__members__:
        raise ConfigurationError(
            f"Unknown accumulation mode: {config['controller']['accumulation']}"
        )
    for section, key in _FLOAT_KEYS:
        _number(config, section, key, float)
    for section, key in _INT_KEYS:
        _number(config, section, key, int)

    for section, key in _POSITIVE_KEYS:
        if not float(config[section][key]) > 0:
            raise ConfigurationError(f"{section}.{key} must be positive")


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a YAML file, creating a default file if missing.

    Raises:
        ConfigurationError: If the file cannot be parsed or is incomplete
    """
    config_path = Path(config_path)
    try:
        if config_path.exists():
            logger.info(f"Loading existing configuration from {config_path}")
            with open(config_path, "r") as f:
                config = yaml.safe_load(f)
            validate_config(config)
        else:
            logger.warning(f"Configuration file not found, creating default: {config_path}")
            config = default_config()
            save_config(config, config_path)

    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration: {e}")
        raise ConfigurationError(f"Configuration parsing error: {e}")
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid configuration value: {e}")
        raise ConfigurationError(f"Configuration value error: {e}")

    return config


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> None:
    """Save a configuration dictionary to a YAML file."""
    config_path = Path(config_path)
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, indent=2)
        logger.info(f"Configuration saved to {config_path}")

    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
        raise ConfigurationError(f"Configuration save error: {e}")


def tuning_from_config(config: Dict[str, Any]) -> PidTuning:
    """Build the tuning from the tuning section; Ts comes from the encoder gate."""
    t = config["tuning"]
    return PidTuning(
        kp=float(t["kp"]),
        ki=float(t["ki"]),
        kd=float(t["kd"]),
        n=float(t["n"]),
        b=float(t["b"]),
        c=float(t["c"]),
        kb=float(t["kb"]),
        ts=1.0 / float(config["encoder"]["gate_hz"]),
    )
