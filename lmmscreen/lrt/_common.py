"""
Common data types for predictor screens.

Frozen payloads for Result[ScreenParams]. Pure data, no computation.
"""

from dataclasses import dataclass

from lmmscreen.formula.terms import Formula
from lmmscreen.mixed.solution import LMMSolution


@dataclass(frozen=True)
class ComparisonRow:
    """Likelihood ratio comparison of one candidate against the baseline.

    Attributes:
        predictor: Label of the term the candidate adds.
        objective_diff: objective(candidate) - objective(baseline), as
            computed. Normally <= 0; positive means the larger model
            fit worse, which a nested ML fit should not do.
        df_diff: dof(candidate) - dof(baseline), always >= 1.
        statistic: The chi-squared statistic, the improvement
            objective(baseline) - objective(candidate), clamped at 0.
        p_value: P(X > statistic), X ~ chi2(df_diff).
        anomalous: True when objective_diff exceeded the tolerance for
            optimizer noise.
    """
    predictor: str
    objective_diff: float
    df_diff: int
    statistic: float
    p_value: float
    anomalous: bool = False


@dataclass(frozen=True)
class ScreenParams:
    """
    Parameter payload for a predictor screen.

    rows, candidate_formulas and candidate_fits are aligned with
    predictors, in the order the predictors were given.
    """
    predictors: tuple[str, ...]
    rows: tuple[ComparisonRow, ...]

    baseline_formula: Formula
    candidate_formulas: tuple[Formula, ...]
    baseline_fit: LMMSolution
    candidate_fits: tuple[LMMSolution, ...]

    n_obs: int
    n_dropped: int
