"""
Tests for compare(), the likelihood ratio test between two fits.

compare() only reads objective, dof, reml and n_obs, so most tests use
lightweight stand-ins for fitted models with known objectives.
"""

import warnings
from types import SimpleNamespace

import numpy as np
import pytest
from scipy import stats

from lmmscreen.core.exceptions import DegenerateComparisonError, ValidationError
from lmmscreen.lrt import ComparisonRow, compare


def _fit(objective, dof, *, reml=False, n_obs=200):
    return SimpleNamespace(objective=objective, dof=dof, reml=reml, n_obs=n_obs)


class TestCompareArithmetic:
    """Sign conventions and the chi-squared p-value."""

    def test_worked_example(self):
        """Baseline 100.0, candidate 96.0, one added parameter."""
        row = compare(_fit(100.0, 5), _fit(96.0, 6), predictor='freq')

        assert isinstance(row, ComparisonRow)
        assert row.predictor == 'freq'
        assert row.objective_diff == pytest.approx(-4.0)
        assert row.df_diff == 1
        assert row.statistic == pytest.approx(4.0)
        assert row.p_value == pytest.approx(0.0455, abs=1e-4)
        np.testing.assert_allclose(row.p_value, stats.chi2.sf(4.0, 1))
        assert not row.anomalous

    def test_multi_df_candidate(self):
        """A 3-level factor adds two parameters."""
        row = compare(_fit(100.0, 5), _fit(92.0, 7))
        assert row.df_diff == 2
        np.testing.assert_allclose(row.p_value, stats.chi2.sf(8.0, 2))

    def test_objective_diff_keeps_raw_sign(self):
        row = compare(_fit(250.5, 5), _fit(249.0, 6))
        assert row.objective_diff == pytest.approx(-1.5)
        assert row.statistic == pytest.approx(1.5)

    def test_no_improvement_gives_p_one(self):
        row = compare(_fit(100.0, 5), _fit(100.0, 6))
        assert row.statistic == 0.0
        assert row.p_value == pytest.approx(1.0)

    def test_large_improvement_small_p(self):
        row = compare(_fit(1000.0, 5), _fit(900.0, 6))
        assert 0.0 <= row.p_value < 1e-10

    @pytest.mark.parametrize("cand_obj", [99.9, 95.0, 80.0, 50.0, 100.0])
    def test_p_value_in_unit_interval(self, cand_obj):
        row = compare(_fit(100.0, 5), _fit(cand_obj, 6))
        assert 0.0 <= row.p_value <= 1.0

    def test_p_value_decreases_with_improvement(self):
        p = [compare(_fit(100.0, 5), _fit(c, 6)).p_value for c in (99.0, 97.0, 90.0)]
        assert p[0] > p[1] > p[2]


class TestCompareAnomalies:
    """Candidate objective above the baseline's."""

    def test_optimizer_noise_clamped_silently(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            row = compare(_fit(100.0, 5), _fit(100.0 + 1e-9, 6))
        assert row.objective_diff > 0
        assert row.statistic == 0.0
        assert row.p_value == pytest.approx(1.0)
        assert not row.anomalous

    def test_real_anomaly_flagged_and_warned(self):
        with pytest.warns(RuntimeWarning, match="higher objective"):
            row = compare(_fit(100.0, 5), _fit(100.5, 6), predictor='length')
        assert row.anomalous
        assert row.objective_diff == pytest.approx(0.5)
        assert row.statistic == 0.0
        assert row.p_value == pytest.approx(1.0)

    def test_anomaly_tolerance_configurable(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            row = compare(_fit(100.0, 5), _fit(100.5, 6), anomaly_tol=1.0)
        assert not row.anomalous


class TestCompareErrors:

    def test_zero_df_diff_raises(self):
        with pytest.raises(DegenerateComparisonError) as exc:
            compare(_fit(100.0, 5), _fit(96.0, 5), predictor='freq')
        assert exc.value.df_diff == 0
        assert "'freq'" in str(exc.value)

    def test_negative_df_diff_raises(self):
        with pytest.raises(DegenerateComparisonError) as exc:
            compare(_fit(96.0, 6), _fit(100.0, 5))
        assert exc.value.df_diff == -1

    def test_reml_fit_rejected(self):
        with pytest.raises(ValidationError, match="ML"):
            compare(_fit(100.0, 5, reml=True), _fit(96.0, 6))
        with pytest.raises(ValidationError, match="ML"):
            compare(_fit(100.0, 5), _fit(96.0, 6, reml=True))

    def test_different_observations_rejected(self):
        with pytest.raises(ValidationError, match="different observations"):
            compare(_fit(100.0, 5, n_obs=200), _fit(96.0, 6, n_obs=190))

    def test_degenerate_is_validation_error(self):
        with pytest.raises(ValidationError):
            compare(_fit(100.0, 5), _fit(96.0, 5))
