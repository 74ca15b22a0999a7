"""
Custom exceptions for deltapid package.
"""


class DeltaPIDError(Exception):
    """Base exception for all deltapid related errors."""
    pass


class ConfigurationError(DeltaPIDError):
    """Exception raised when invalid configuration parameters are provided."""
    pass


class TraceFileError(DeltaPIDError):
    """Exception raised when a reference trace file is missing, empty or malformed."""
    pass


class CountOverflowError(DeltaPIDError):
    """Exception raised when an encoder count delta does not fit the 16-bit register."""
    pass
