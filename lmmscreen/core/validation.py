"""
Input validation utilities for lmmscreen.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from lmmscreen.core.exceptions import (
    ValidationError, DimensionError, RankDeficientError,
)


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Rejects inputs that result in object or other non-numeric dtypes
    (strings in a response column, for instance).

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with floating dtype

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    if not np.issubdtype(result.dtype, np.floating):
        result = result.astype(np.float64)

    return result


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_1d(array: NDArray, name: str) -> None:
    """
    Verify array is 1-dimensional.

    Raises:
        DimensionError: If array is not 1D
    """
    if array.ndim != 1:
        raise DimensionError(
            f"{name}: expected 1D array, got {array.ndim}D with shape {array.shape}"
        )


def check_consistent_length(
    *arrays: NDArray,
    names: tuple[str, ...]
) -> None:
    """
    Verify all arrays have the same length (first dimension).

    Raises:
        ValueError: If number of names doesn't match number of arrays
        DimensionError: If arrays have inconsistent lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    if len(arrays) < 2:
        return

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{name}={length}" for name, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")


def check_min_samples(array: NDArray, min_samples: int, name: str) -> None:
    """
    Verify array has at least the minimum number of samples.

    Raises:
        ValidationError: If array has fewer than min_samples
    """
    n = array.shape[0]
    if n < min_samples:
        raise ValidationError(
            f"{name}: requires at least {min_samples} samples, got {n}"
        )


def check_column_rank(
    X: NDArray[np.floating[Any]],
    name: str,
    column_names: tuple[str, ...] = (),
) -> None:
    """
    Verify matrix has full column rank.

    A rank-deficient fixed-effects matrix has no unique coefficient
    estimates. The usual culprit in a predictor screen is a constant
    column, which duplicates the intercept; those are named in the
    error message.

    Args:
        X: 2D array to check
        name: Parameter name for error messages
        column_names: Optional labels for the columns of X

    Raises:
        RankDeficientError: If matrix is rank-deficient
    """
    n, p = X.shape
    rank = int(np.linalg.matrix_rank(X))

    if rank < p:
        labels = column_names or tuple(str(j) for j in range(p))
        ones = np.flatnonzero(np.all(X == 1.0, axis=0))
        intercept_col = int(ones[0]) if len(ones) else None
        constant = [
            labels[j] for j in range(p)
            if j != intercept_col and np.ptp(X[:, j]) == 0
        ]
        detail = ""
        if constant and intercept_col is not None:
            detail = f" Constant columns collinear with the intercept: {constant}."
        elif constant:
            detail = f" Constant columns: {constant}."
        raise RankDeficientError(
            f"{name}: rank-deficient (rank={rank}, expected={p}).{detail}",
            rank=rank,
            expected_rank=p,
            columns=tuple(labels),
        )
