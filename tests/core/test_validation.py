"""
Tests for input validation utilities.

Validates every function in core/validation.py:
    - check_array: conversion, dtype coercion, object rejection
    - check_finite: NaN/Inf detection
    - check_1d: dimensionality check
    - check_consistent_length: multi-array length matching
    - check_min_samples: minimum sample count
    - check_column_rank: rank deficiency detection and constant-column naming
"""

import numpy as np
import pytest

from lmmscreen.core.exceptions import (
    DimensionError, RankDeficientError, ValidationError,
)
from lmmscreen.core.validation import (
    check_1d,
    check_array,
    check_column_rank,
    check_consistent_length,
    check_finite,
    check_min_samples,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:
    """check_array converts to ndarray and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "y")
        assert isinstance(result, np.ndarray)
        assert np.issubdtype(result.dtype, np.floating)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_int_array_promoted_to_float(self):
        result = check_array(np.array([1, 2, 3], dtype=np.int32), "y")
        assert np.issubdtype(result.dtype, np.floating)

    def test_float_array_passthrough(self):
        arr = np.array([1.5, 2.5])
        result = check_array(arr, "y")
        np.testing.assert_array_equal(result, arr)

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="rt"):
            check_array(np.array(['fast', 'slow']), "rt")

    def test_object_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array(np.array([1.0, 'a'], dtype=object), "rt")


# ═══════════════════════════════════════════════════════════════════════
# check_finite / check_1d / check_min_samples
# ═══════════════════════════════════════════════════════════════════════


class TestCheckFinite:

    def test_finite_passes(self):
        check_finite(np.array([1.0, 2.0]), "y")

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_raises(self, bad):
        with pytest.raises(ValidationError, match="y"):
            check_finite(np.array([1.0, bad]), "y")


class TestCheck1d:

    def test_1d_passes(self):
        check_1d(np.zeros(4), "g")

    def test_2d_raises(self):
        with pytest.raises(DimensionError):
            check_1d(np.zeros((4, 2)), "g")


class TestCheckMinSamples:

    def test_enough(self):
        check_min_samples(np.zeros(3), 3, "y")

    def test_too_few(self):
        with pytest.raises(ValidationError, match="at least 3"):
            check_min_samples(np.zeros(2), 3, "y")


# ═══════════════════════════════════════════════════════════════════════
# check_consistent_length
# ═══════════════════════════════════════════════════════════════════════


class TestCheckConsistentLength:

    def test_same_length(self):
        check_consistent_length(np.zeros(5), np.zeros((5, 2)), names=("y", "X"))

    def test_mismatch_raises(self):
        with pytest.raises(DimensionError, match="y=5, X=4"):
            check_consistent_length(np.zeros(5), np.zeros((4, 2)), names=("y", "X"))

    def test_names_count_mismatch(self):
        with pytest.raises(ValueError):
            check_consistent_length(np.zeros(5), np.zeros(5), names=("y",))


# ═══════════════════════════════════════════════════════════════════════
# check_column_rank
# ═══════════════════════════════════════════════════════════════════════


class TestCheckColumnRank:

    def test_full_rank_passes(self, rng):
        X = np.column_stack([np.ones(20), rng.normal(size=20)])
        check_column_rank(X, "X")

    def test_constant_column_names_intercept_collinearity(self, rng):
        X = np.column_stack([np.ones(20), rng.normal(size=20), np.full(20, 3.0)])
        with pytest.raises(RankDeficientError, match="collinear with the intercept") as exc:
            check_column_rank(X, "X", ('(Intercept)', 'freq', 'constant'))
        assert exc.value.rank == 2
        assert exc.value.expected_rank == 3
        assert "constant" in str(exc.value)
        assert exc.value.columns == ('(Intercept)', 'freq', 'constant')

    def test_collinear_predictors(self, rng):
        x = rng.normal(size=20)
        X = np.column_stack([np.ones(20), x, 2.0 * x])
        with pytest.raises(RankDeficientError) as exc:
            check_column_rank(X, "X")
        assert "intercept" not in str(exc.value)
