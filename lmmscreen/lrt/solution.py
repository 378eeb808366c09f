"""
Solution wrapper for predictor screens.

ScreenSolution wraps Result[ScreenParams] and exposes the comparison
table as an N x 3 array, a DataFrame, and an R anova()-style summary.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from lmmscreen.core.result import Result
from lmmscreen.formula.terms import Formula
from lmmscreen.mixed.solution import LMMSolution, format_pvalue, significance_stars
from lmmscreen.lrt._common import ComparisonRow, ScreenParams

TABLE_COLUMNS = ('objective_diff', 'df_diff', 'p_value')


class ScreenSolution:
    """Result of screen(): one likelihood ratio test per predictor."""

    def __init__(self, _result: Result[ScreenParams]):
        self._result = _result

    @property
    def params(self) -> ScreenParams:
        return self._result.params

    @property
    def info(self) -> dict:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Comparison table ---

    @property
    def rows(self) -> tuple[ComparisonRow, ...]:
        return self.params.rows

    @property
    def predictors(self) -> tuple[str, ...]:
        return self.params.predictors

    @property
    def table(self) -> NDArray:
        """N x 3 float array, columns (objective_diff, df_diff, p_value)."""
        return np.array(
            [[r.objective_diff, r.df_diff, r.p_value] for r in self.rows],
            dtype=np.float64,
        ).reshape(len(self.rows), len(TABLE_COLUMNS))

    @property
    def p_values(self) -> NDArray:
        return np.array([r.p_value for r in self.rows])

    @property
    def statistics(self) -> NDArray:
        """Chi-squared statistics (improvement in objective, >= 0)."""
        return np.array([r.statistic for r in self.rows])

    def row(self, predictor: str) -> ComparisonRow:
        """Look up the row for one predictor label."""
        for r in self.rows:
            if r.predictor == predictor:
                return r
        raise KeyError(
            f"No predictor {predictor!r}. Available: {list(self.predictors)}"
        )

    # --- Fits ---

    @property
    def baseline(self) -> LMMSolution:
        return self.params.baseline_fit

    @property
    def candidates(self) -> tuple[LMMSolution, ...]:
        return self.params.candidate_fits

    @property
    def baseline_formula(self) -> Formula:
        return self.params.baseline_formula

    @property
    def candidate_formulas(self) -> tuple[Formula, ...]:
        return self.params.candidate_formulas

    # --- Output ---

    def to_dataframe(self) -> pd.DataFrame:
        """One row per predictor, indexed by predictor label."""
        df = pd.DataFrame(
            {
                'objective_diff': [r.objective_diff for r in self.rows],
                'df_diff': [r.df_diff for r in self.rows],
                'statistic': [r.statistic for r in self.rows],
                'p_value': [r.p_value for r in self.rows],
                'anomalous': [r.anomalous for r in self.rows],
            },
            index=pd.Index(self.predictors, name='predictor'),
        )
        return df

    def summary(self) -> str:
        """Likelihood ratio table in the layout of R's anova() for lmer fits."""
        base = self.baseline
        width = max([len('predictor')] + [len(p) for p in self.predictors])

        lines = [
            "Likelihood ratio tests against baseline (ML)",
            "=" * 60,
            f"Baseline: {self.baseline_formula}",
            f"  objective: {base.objective:.4f}  dof: {base.dof}  "
            f"n: {self.params.n_obs}",
        ]
        if self.params.n_dropped:
            lines.append(f"  rows dropped for missing values: {self.params.n_dropped}")
        lines.append("")

        lines.append(
            f" {'predictor':<{width}s} {'obj.diff':>10s} {'Df':>4s} "
            f"{'Chisq':>10s} {'Pr(>Chisq)':>11s} {'':>4s}"
        )
        for r in self.rows:
            flag = '  !' if r.anomalous else ''
            lines.append(
                f" {r.predictor:<{width}s} {r.objective_diff:10.4f} {r.df_diff:4d} "
                f"{r.statistic:10.4f} {format_pvalue(r.p_value):>11s} "
                f"{significance_stars(r.p_value)}{flag}"
            )

        lines.append("---")
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        lines.append("p-values are not adjusted for multiple comparisons.")
        if any(r.anomalous for r in self.rows):
            lines.append("! candidate objective exceeds baseline; statistic set to 0")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"ScreenSolution(n_predictors={len(self.rows)}, "
            f"n={self.params.n_obs}, "
            f"baseline='{self.baseline_formula}')"
        )
