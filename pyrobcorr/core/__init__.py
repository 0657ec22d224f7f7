"""
Core infrastructure for pyrobcorr.

Key components:
    protocols: Backend protocol
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Hardware detection and timing
"""

from pyrobcorr.core.protocols import Backend
from pyrobcorr.core.result import Result
from pyrobcorr.core.exceptions import (
    PyRobCorrError,
    ValidationError,
    DimensionError,
    ConfigurationError,
    NumericalError,
)

__all__ = [
    "Backend",
    "Result",
    "PyRobCorrError",
    "ValidationError",
    "DimensionError",
    "ConfigurationError",
    "NumericalError",
]
