"""
Golden trace files: whitespace separated decimal floats, one output per sample.
"""

from pathlib import Path
from typing import Iterable, List, Union

from loguru import logger

from .exceptions import TraceFileError


def load_trace(path: Union[str, Path]) -> List[float]:
    """
    Read every value of a reference trace file in order.

    Raises:
        TraceFileError: If the file is missing, unreadable, empty, or contains
            a token that is not a number
    """
    path = Path(path)
    try:
        text = path.read_text()
    except FileNotFoundError:
        logger.error(f"Reference trace not found: {path}")
        raise TraceFileError(f"Reference trace not found: {path}")
    except OSError as e:
        logger.error(f"Failed to read reference trace {path}: {e}")
        raise TraceFileError(f"Cannot read reference trace {path}: {e}")

    values = []
    for index, token in enumerate(text.split()):
        try:
            values.append(float(token))
        except ValueError:
            raise TraceFileError(f"{path}: value #{index} is not a number: {token!r}")

    if not values:
        raise TraceFileError(f"Reference trace is empty: {path}")

    logger.info(f"Loaded {len(values)} reference values from {path}")
    return values


def save_trace(path: Union[str, Path], values: Iterable[float]) -> None:
    """Write values one per line with enough digits to round-trip float32."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for value in values:
            f.write(f"{value:.9g}\n")
    logger.info(f"Trace saved to {path}")
