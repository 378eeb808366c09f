"""
Tests for contrast coding and fixed-effects matrix construction.

Validates:
    - Treatment (dummy) coding shapes, baseline selection, indicator values
    - Deviation (sum-to-zero) coding properties
    - ContrastConfig validation and per-column overrides
    - build_fixed_matrix: column names, per-term df, dtype inference,
      rank and level checks
"""

from dataclasses import FrozenInstanceError

import numpy as np
import pandas as pd
import pytest

from lmmscreen.core.exceptions import (
    MissingColumnError, RankDeficientError, ValidationError,
)
from lmmscreen.core.table import Table
from lmmscreen.formula.contrasts import (
    ContrastConfig,
    build_fixed_matrix,
    encode_deviation,
    encode_treatment,
)
from lmmscreen.formula.terms import FixedTerm, Formula


# ═══════════════════════════════════════════════════════════════════════
# encode_treatment / encode_deviation
# ═══════════════════════════════════════════════════════════════════════


class TestEncodeTreatment:
    """Treatment coding produces (n, k-1) indicators dropping first level."""

    def test_shape_3_levels(self):
        factor = np.array(['A', 'B', 'C', 'A', 'B', 'C'])
        X, levels, baseline = encode_treatment(factor)
        assert X.shape == (6, 2)
        assert baseline == 'A'
        assert levels == ['B', 'C']

    def test_indicator_values(self):
        factor = np.array(['A', 'B', 'C', 'A', 'B', 'C'])
        X, _, _ = encode_treatment(factor)
        np.testing.assert_array_equal(X[:, 0], [0, 1, 0, 0, 1, 0])
        np.testing.assert_array_equal(X[:, 1], [0, 0, 1, 0, 0, 1])

    def test_baseline_is_first_sorted_level(self):
        _, _, baseline = encode_treatment(np.array(['Z', 'A', 'M']))
        assert baseline == 'A'

    def test_integer_labels(self):
        X, levels, baseline = encode_treatment(np.array([1, 2, 3, 1, 2]))
        assert baseline == '1'
        assert levels == ['2', '3']
        assert X.shape == (5, 2)


class TestEncodeDeviation:
    """Deviation coding: last level is -1 in every column."""

    def test_shape_and_levels(self):
        X, levels = encode_deviation(np.array(['a', 'b', 'c', 'a', 'b', 'c']))
        assert X.shape == (6, 2)
        assert levels == ['a', 'b']

    def test_reference_row_is_minus_one(self):
        X, _ = encode_deviation(np.array(['a', 'b', 'c']))
        np.testing.assert_array_equal(X[2], [-1.0, -1.0])

    def test_balanced_columns_sum_to_zero(self):
        X, _ = encode_deviation(np.array(['a', 'b', 'c'] * 4))
        np.testing.assert_allclose(X.sum(axis=0), 0.0)


# ═══════════════════════════════════════════════════════════════════════
# ContrastConfig
# ═══════════════════════════════════════════════════════════════════════


class TestContrastConfig:

    def test_default_treatment(self):
        assert ContrastConfig().coding_for('condition') == 'treatment'

    def test_override(self):
        cfg = ContrastConfig(default='deviation', overrides={'block': 'treatment'})
        assert cfg.coding_for('condition') == 'deviation'
        assert cfg.coding_for('block') == 'treatment'

    def test_unknown_default_raises(self):
        with pytest.raises(ValidationError, match="helmert"):
            ContrastConfig(default='helmert')

    def test_unknown_override_raises(self):
        with pytest.raises(ValidationError, match="block"):
            ContrastConfig(overrides={'block': 'poly'})

    def test_hashable_and_compared_by_value(self):
        a = ContrastConfig(overrides={'block': 'deviation', 'cond': 'treatment'})
        b = ContrastConfig(overrides=(('cond', 'treatment'), ('block', 'deviation')))
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b, ContrastConfig()}) == 2

    def test_overrides_frozen(self):
        cfg = ContrastConfig(overrides={'block': 'deviation'})
        assert cfg.overrides == (('block', 'deviation'),)
        with pytest.raises(FrozenInstanceError):
            cfg.overrides = ()


# ═══════════════════════════════════════════════════════════════════════
# build_fixed_matrix
# ═══════════════════════════════════════════════════════════════════════


@pytest.fixture
def design_table(rng):
    n = 30
    return Table.from_dataframe(pd.DataFrame({
        'rt': rng.normal(600, 50, n),
        'subject': np.repeat(['s1', 's2', 's3'], 10),
        'freq': rng.normal(size=n),
        'condition': np.tile(['a', 'b', 'c'], 10),
        'block': np.tile([1, 2], 15),
        'constant': np.full(n, 2.5),
        'single': np.full(n, 'x'),
    }))


class TestBuildFixedMatrix:

    def test_intercept_only(self, design_table):
        fm = build_fixed_matrix(Formula.parse('rt ~ 1 + (1 | subject)'), design_table)
        assert fm.X.shape == (30, 1)
        assert fm.column_names == ('(Intercept)',)
        np.testing.assert_array_equal(fm.X[:, 0], 1.0)

    def test_numeric_term(self, design_table):
        fm = build_fixed_matrix(
            Formula.parse('rt ~ 1 + freq + (1 | subject)'), design_table,
        )
        assert fm.column_names == ('(Intercept)', 'freq')
        assert fm.term_df['freq'] == 1
        np.testing.assert_array_equal(fm.X[:, 1], design_table.column('freq'))

    def test_string_column_inferred_categorical(self, design_table):
        fm = build_fixed_matrix(
            Formula.parse('rt ~ 1 + condition + (1 | subject)'), design_table,
        )
        assert fm.column_names == ('(Intercept)', 'conditionb', 'conditionc')
        assert fm.term_df['condition'] == 2
        assert fm.factor_levels['condition'] == ['a', 'b', 'c']
        assert fm.codings['condition'] == 'treatment'

    def test_forced_categorical_numeric_column(self, design_table):
        fm = build_fixed_matrix(
            Formula.parse('rt ~ 1 + C(block) + (1 | subject)'), design_table,
        )
        assert fm.column_names == ('(Intercept)', 'block2')
        assert fm.term_df['C(block)'] == 1
        assert fm.term_slices['C(block)'] == slice(1, 2)

    def test_deviation_coding(self, design_table):
        fm = build_fixed_matrix(
            Formula.parse('rt ~ 1 + condition + (1 | subject)'),
            design_table,
            ContrastConfig(default='deviation'),
        )
        assert fm.column_names == ('(Intercept)', 'conditiona', 'conditionb')
        assert fm.codings['condition'] == 'deviation'
        assert set(np.unique(fm.X[:, 1:])) == {-1.0, 0.0, 1.0}

    def test_no_intercept(self, design_table):
        fm = build_fixed_matrix(
            Formula.parse('rt ~ 0 + freq + (1 | subject)'), design_table,
        )
        assert fm.column_names == ('freq',)
        assert not fm.has_intercept

    def test_constant_predictor_rank_deficient(self, design_table):
        with pytest.raises(RankDeficientError, match="constant"):
            build_fixed_matrix(
                Formula.parse('rt ~ 1 + constant + (1 | subject)'), design_table,
            )

    def test_single_level_factor_raises(self, design_table):
        with pytest.raises(ValidationError, match="level"):
            build_fixed_matrix(
                Formula.parse('rt ~ 1 + single + (1 | subject)'), design_table,
            )

    def test_missing_column(self, design_table):
        with pytest.raises(MissingColumnError):
            build_fixed_matrix(
                Formula.parse('rt ~ 1 + zipf + (1 | subject)'), design_table,
            )

    def test_string_column_forced_numeric_raises(self, design_table):
        formula = Formula.parse('rt ~ 1 + (1 | subject)').add_term(
            FixedTerm('condition', categorical=False))
        with pytest.raises(ValidationError):
            build_fixed_matrix(formula, design_table)
