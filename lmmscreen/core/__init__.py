"""
Core infrastructure for lmmscreen.

Shared abstractions used by the formula, mixed and lrt subpackages.

Key components:
    table: Table, the read-only observation table
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Section timing
"""

from lmmscreen.core.table import Table
from lmmscreen.core.result import Result
from lmmscreen.core.exceptions import (
    LMMScreenError,
    ValidationError,
    DimensionError,
    MissingColumnError,
    FormulaError,
    DegenerateComparisonError,
    NumericalError,
    RankDeficientError,
    ConvergenceError,
)

__all__ = [
    # Data
    "Table",
    # Result
    "Result",
    # Exceptions
    "LMMScreenError",
    "ValidationError",
    "DimensionError",
    "MissingColumnError",
    "FormulaError",
    "DegenerateComparisonError",
    "NumericalError",
    "RankDeficientError",
    "ConvergenceError",
]
