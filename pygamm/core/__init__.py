"""
Core infrastructure for PyGAMM.

Shared abstractions used by the data, gamm and montecarlo subpackages.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    timing: Section timer
"""

from pygamm.core.result import Result
from pygamm.core.timing import Timer
from pygamm.core.exceptions import (
    PyGAMMError,
    ValidationError,
    DimensionError,
    InsufficientDataError,
    NumericalError,
    SingularMatrixError,
    ConvergenceError,
    TermNotFoundError,
)

__all__ = [
    "Result",
    "Timer",
    "PyGAMMError",
    "ValidationError",
    "DimensionError",
    "InsufficientDataError",
    "NumericalError",
    "SingularMatrixError",
    "ConvergenceError",
    "TermNotFoundError",
]
