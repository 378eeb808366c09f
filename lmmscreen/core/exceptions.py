"""
Exception hierarchy for lmmscreen.

All exceptions inherit from LMMScreenError so callers can catch any
library-specific failure in one place. A screening run is all-or-nothing:
these errors propagate out of screen() and abort it.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class LMMScreenError(Exception):
    """Base exception for all lmmscreen errors."""
    pass


class ValidationError(LMMScreenError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.
    """
    pass


class MissingColumnError(ValidationError):
    """
    A formula references a column the table does not have.

    Attributes:
        column: The missing column name
        available: Columns present in the table
    """

    def __init__(
        self,
        message: str,
        column: str | None = None,
        available: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.column = column
        self.available = available


class FormulaError(ValidationError):
    """
    A formula is malformed or a term operation is invalid.

    Raised by the formula parser and by Formula.add_term when a term is
    already present.
    """
    pass


class DegenerateComparisonError(ValidationError):
    """
    Two fits cannot be compared with a likelihood ratio test.

    Raised when the candidate adds no free parameters over the baseline
    (df_diff == 0, where the chi-squared reference distribution is
    degenerate) or has fewer parameters than the baseline.

    Attributes:
        df_diff: Candidate dof minus baseline dof
    """

    def __init__(self, message: str, df_diff: int | None = None):
        super().__init__(message)
        self.df_diff = df_diff


class NumericalError(LMMScreenError):
    """
    Numerical computation failed.
    """
    pass


class RankDeficientError(NumericalError):
    """
    Fixed-effects design matrix does not have full column rank.

    A zero-variance predictor is collinear with the intercept and lands
    here, as does any exact linear dependence between predictors.

    Attributes:
        rank: Numerical rank of the matrix
        expected_rank: Number of columns
        columns: Names of the design matrix columns, if known
    """

    def __init__(
        self,
        message: str,
        rank: int | None = None,
        expected_rank: int | None = None,
        columns: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.rank = rank
        self.expected_rank = expected_rank
        self.columns = columns


class ConvergenceError(LMMScreenError):
    """
    The variance-component optimizer failed to converge.

    Attributes:
        iterations: Number of iterations completed
        reason: Optimizer message explaining the failure
        formula: Rendered formula of the model being fit, if known
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        reason: str | None = None,
        formula: str | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.reason = reason
        self.formula = formula
