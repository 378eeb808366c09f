"""
Contrast coding and fixed-effects model matrix construction.

Translates a Formula's fixed part into a numeric design matrix. Numeric
columns enter as-is; categorical columns are expanded into k-1 coded
columns according to a ContrastConfig, which is passed explicitly to
every fit rather than held as module state.

Key concepts:
    - Treatment coding: k-1 indicator columns (baseline = first level)
    - Deviation coding: k-1 columns summing to zero across levels
    - FixedEffectsMatrix: the design matrix plus the per-term column map
      needed to count parameters each term contributes
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from lmmscreen.core.exceptions import ValidationError
from lmmscreen.core.table import Table
from lmmscreen.core.validation import check_array, check_finite, check_column_rank
from lmmscreen.formula.terms import Formula

CODINGS = ('treatment', 'deviation')


@dataclass(frozen=True)
class ContrastConfig:
    """
    Categorical coding scheme for fixed effects.

    Attributes:
        default: Coding for any categorical column without an override.
        overrides: column name -> coding, for per-column exceptions. A
            mapping is accepted and stored as sorted (column, coding)
            pairs, so configs are hashable and compare by value.

    Example:
        >>> ContrastConfig(default='deviation', overrides={'block': 'treatment'})
    """
    default: str = 'treatment'
    overrides: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        pairs = tuple(sorted(dict(self.overrides).items()))
        object.__setattr__(self, 'overrides', pairs)
        for name, coding in [('default', self.default), *pairs]:
            if coding not in CODINGS:
                raise ValidationError(
                    f"coding for {name!r} must be one of {CODINGS}, got {coding!r}"
                )

    def coding_for(self, column: str) -> str:
        return dict(self.overrides).get(column, self.default)


@dataclass(frozen=True)
class FixedEffectsMatrix:
    """
    Encoded fixed-effects design matrix with term metadata.

    Attributes:
        X: (n, p) float64 design matrix (including intercept if requested)
        column_names: label per column of X, R-style ('(Intercept)', 'freq',
            'conditionB')
        term_slices: term label -> column slice in X
        term_df: term label -> number of columns it contributes
        factor_levels: categorical column -> sorted level strings
        codings: categorical column -> coding actually applied
        has_intercept: whether column 0 is an intercept
    """
    X: NDArray[np.floating[Any]]
    column_names: tuple[str, ...]
    term_slices: dict[str, slice]
    term_df: dict[str, int]
    factor_levels: dict[str, list[str]]
    codings: dict[str, str]
    has_intercept: bool

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]


def _levels(factor: NDArray) -> tuple[NDArray, list[str]]:
    """Level labels as strings, in sorted order of the raw values."""
    unique = np.unique(factor)
    return np.asarray([str(v) for v in factor]), [str(v) for v in unique]


def encode_treatment(
    factor: NDArray,
) -> tuple[NDArray, list[str], str]:
    """
    Treatment (dummy) coding for a single factor.

    Drops the first level (baseline) and creates k-1 indicator columns.

    Returns:
        (X_coded, level_names, baseline) where:
            X_coded: (n, k-1) float64 indicator matrix
            level_names: the k-1 non-baseline level names (column labels)
            baseline: the dropped baseline level name
    """
    factor_str, levels = _levels(factor)
    baseline = levels[0]
    contrasts = levels[1:]

    X = np.zeros((len(factor_str), len(contrasts)), dtype=np.float64)
    for j, level in enumerate(contrasts):
        X[:, j] = (factor_str == level).astype(np.float64)

    return X, contrasts, baseline


def encode_deviation(
    factor: NDArray,
) -> tuple[NDArray, list[str]]:
    """
    Deviation (sum-to-zero) coding for a single factor.

    Each column sums to zero across levels. The last level gets -1 in all
    columns, so the intercept is the unweighted mean of the level means.

    Returns:
        (X_coded, level_names) where:
            X_coded: (n, k-1) float64 deviation-coded matrix
            level_names: the k-1 level names (last level is the reference)
    """
    factor_str, levels = _levels(factor)
    reference = levels[-1]
    coded_levels = levels[:-1]

    X = np.zeros((len(factor_str), len(coded_levels)), dtype=np.float64)
    for j, level in enumerate(coded_levels):
        X[factor_str == level, j] = 1.0
        X[factor_str == reference, j] = -1.0

    return X, coded_levels


def build_fixed_matrix(
    formula: Formula,
    table: Table,
    contrasts: ContrastConfig | None = None,
) -> FixedEffectsMatrix:
    """
    Build the fixed-effects design matrix for a formula.

    Args:
        formula: Model formula; only its fixed part and intercept are used.
        table: Observation table. Must already be free of missing values
            in the referenced columns.
        contrasts: Coding scheme for categorical terms. Default: treatment.

    Returns:
        FixedEffectsMatrix

    Raises:
        MissingColumnError: A term's column is not in the table
        ValidationError: Non-numeric column forced numeric, a categorical
            column with fewer than 2 levels, or non-finite values
        RankDeficientError: The assembled matrix is not full column rank
            (a constant predictor, or exactly collinear predictors)
    """
    contrasts = contrasts or ContrastConfig()
    table.require(formula.fixed_columns)
    n = table.n_rows

    columns: list[NDArray] = []
    names: list[str] = []
    term_slices: dict[str, slice] = {}
    term_df: dict[str, int] = {}
    factor_levels: dict[str, list[str]] = {}
    codings: dict[str, str] = {}
    col_offset = 0

    if formula.intercept:
        columns.append(np.ones((n, 1), dtype=np.float64))
        names.append('(Intercept)')
        term_slices['(Intercept)'] = slice(0, 1)
        term_df['(Intercept)'] = 1
        col_offset = 1

    for term in formula.fixed:
        raw = table.column(term.column)
        categorical = term.categorical
        if categorical is None:
            categorical = not table.is_numeric(term.column)

        if categorical:
            coding = contrasts.coding_for(term.column)
            _, levels = _levels(raw)
            if len(levels) < 2:
                raise ValidationError(
                    f"Categorical term '{term.column}' has {len(levels)} level(s), "
                    f"need at least 2"
                )
            if coding == 'treatment':
                X_coded, coded, _ = encode_treatment(raw)
            else:
                X_coded, coded = encode_deviation(raw)
            factor_levels[term.column] = levels
            codings[term.column] = coding
            term_names = [f'{term.column}{level}' for level in coded]
        else:
            values = check_array(raw, term.column)
            X_coded = values.reshape(-1, 1).astype(np.float64)
            term_names = [term.column]

        ncols = X_coded.shape[1]
        columns.append(X_coded)
        names.extend(term_names)
        term_slices[str(term)] = slice(col_offset, col_offset + ncols)
        term_df[str(term)] = ncols
        col_offset += ncols

    if not columns:
        raise ValidationError(
            f"Formula '{formula}' has no fixed effects and no intercept"
        )

    X = np.hstack(columns)
    check_finite(X, "X")
    check_column_rank(X, "X", tuple(names))

    return FixedEffectsMatrix(
        X=X,
        column_names=tuple(names),
        term_slices=term_slices,
        term_df=term_df,
        factor_levels=factor_levels,
        codings=codings,
        has_intercept=formula.intercept,
    )
