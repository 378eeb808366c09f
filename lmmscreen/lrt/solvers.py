"""
Predictor screening by likelihood ratio tests against a mixed-model baseline.

Public API:
    fit_formula() — fit one formula to a table
    compare()     — likelihood ratio test of a candidate fit against a baseline fit
    screen()      — baseline + one candidate per predictor, compared row by row
    screen_file() — screen() on a delimited file

The test statistic is the drop in ML deviance from the baseline to the
candidate. With baseline objective 100.0 and candidate objective 96.0:

    objective_diff = 96.0 - 100.0 = -4.0
    statistic      = 100.0 - 96.0 =  4.0
    p_value        = chi2.sf(4.0, df=1) ≈ 0.0455

p-values are per planned comparison; no multiplicity correction is applied.
"""

from __future__ import annotations

import warnings
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from numpy.typing import ArrayLike
from scipy import stats

from lmmscreen.core.result import Result
from lmmscreen.core.table import Table
from lmmscreen.core.compute.timing import Timer
from lmmscreen.core.exceptions import (
    ConvergenceError, DegenerateComparisonError, ValidationError,
)
from lmmscreen.core.validation import check_array
from lmmscreen.formula.terms import Formula, FixedTerm
from lmmscreen.formula.contrasts import ContrastConfig, build_fixed_matrix
from lmmscreen.mixed.solvers import lmm
from lmmscreen.mixed.solution import LMMSolution
from lmmscreen.lrt._common import ComparisonRow, ScreenParams
from lmmscreen.lrt.design import ScreenDesign
from lmmscreen.lrt.solution import ScreenSolution


def fit_formula(
    formula: Formula | str,
    table: Table,
    *,
    contrasts: ContrastConfig | None = None,
    reml: bool = False,
    tol: float = 1e-8,
    max_iter: int = 200,
    theta_starts: Sequence[ArrayLike] = (),
) -> LMMSolution:
    """Fit a mixed model given as a formula.

    Args:
        formula: Formula or its text form, e.g.
            'rt ~ 1 + freq + (1 | subject) + (1 | item)'.
        table: Observation table with no missing values in the
            referenced columns (see Table.complete_cases).
        contrasts: Coding for categorical fixed effects. Default: treatment.
        reml: Fit by REML. Default False (ML), which is what compare()
            requires.
        tol: Optimizer tolerance.
        max_iter: Optimizer iteration limit.
        theta_starts: Extra θ starting points, one value per random
            intercept in formula order. See lmm().

    Returns:
        Converged LMMSolution.

    Raises:
        MissingColumnError: A referenced column is not in the table.
        ValidationError: Missing values, non-numeric response, or no
            random intercept terms.
        RankDeficientError: The fixed-effects matrix is not full rank,
            e.g. a constant predictor.
        ConvergenceError: The optimizer did not converge. Not retried.
    """
    if isinstance(formula, str):
        formula = Formula.parse(formula)
    if not formula.random:
        raise ValidationError(
            f"Formula '{formula}' has no random intercepts; use (1 | group)"
        )

    columns = formula.columns()
    missing = {k: v for k, v in table.missing_counts(columns).items() if v}
    if missing:
        raise ValidationError(
            f"Missing values in {missing}; drop them first with "
            f"table.complete_cases({list(columns)})"
        )

    y = check_array(table.column(formula.response.column), formula.response.column)
    fixed = build_fixed_matrix(formula, table, contrasts)
    groups = {g: table.column(g) for g in formula.group_columns}

    solution = lmm(
        y, fixed.X, groups,
        reml=reml,
        tol=tol,
        max_iter=max_iter,
        coefficient_names=fixed.column_names,
        theta_starts=theta_starts,
    )

    if not solution.converged:
        info = solution.result.info
        raise ConvergenceError(
            f"Fit of '{formula}' did not converge after {info['n_iter']} "
            f"iterations: {info['message']}",
            iterations=info['n_iter'],
            reason=info['message'],
            formula=str(formula),
        )

    return solution


def compare(
    baseline: LMMSolution,
    candidate: LMMSolution,
    *,
    predictor: str = '',
    anomaly_tol: float = 1e-6,
) -> ComparisonRow:
    """Likelihood ratio test of a candidate fit against a baseline fit.

    Args:
        baseline: The smaller model, ML fit.
        candidate: The larger model (baseline plus terms), ML fit to the
            same observations.
        predictor: Label stored on the returned row.
        anomaly_tol: How far the candidate objective may exceed the
            baseline objective before it is treated as a fitting anomaly
            rather than optimizer noise.

    Returns:
        ComparisonRow. objective_diff keeps its raw sign; the statistic
        fed to the chi-squared survival function is never negative.

    Raises:
        ValidationError: A REML fit, or fits on different numbers of
            observations.
        DegenerateComparisonError: The candidate does not add free
            parameters (df_diff <= 0).
    """
    if baseline.reml or candidate.reml:
        raise ValidationError(
            "Likelihood ratio tests of fixed effects need ML fits; "
            "REML criteria are not comparable across fixed-effect structures"
        )
    if baseline.n_obs != candidate.n_obs:
        raise ValidationError(
            f"Fits use different observations: baseline n={baseline.n_obs}, "
            f"candidate n={candidate.n_obs}"
        )

    objective_diff = float(candidate.objective - baseline.objective)
    df_diff = int(candidate.dof - baseline.dof)
    label = f" '{predictor}'" if predictor else ''

    if df_diff <= 0:
        raise DegenerateComparisonError(
            f"Candidate{label} adds {df_diff} parameters over the "
            f"baseline; a likelihood ratio test needs df_diff >= 1",
            df_diff=df_diff,
        )

    statistic = -objective_diff
    anomalous = statistic < -anomaly_tol
    if anomalous:
        warnings.warn(
            f"Candidate{label} has a higher objective than the "
            f"baseline it extends (objective_diff={objective_diff:.6g}); "
            f"the larger model did not reach the nested optimum",
            RuntimeWarning,
            stacklevel=2,
        )
    statistic = max(statistic, 0.0)

    p_value = float(stats.chi2.sf(statistic, df_diff))

    return ComparisonRow(
        predictor=predictor,
        objective_diff=objective_diff,
        df_diff=df_diff,
        statistic=statistic,
        p_value=p_value,
        anomalous=anomalous,
    )


def screen(
    table: Table,
    baseline: Formula | str,
    predictors: Sequence[FixedTerm | str],
    *,
    contrasts: ContrastConfig | None = None,
    tol: float = 1e-8,
    max_iter: int = 200,
    anomaly_tol: float = 1e-6,
    n_jobs: int = 1,
) -> ScreenSolution:
    """Compare baseline + predictor against the baseline, for each predictor.

    All models are fit by ML to the same complete-case rows. Each
    candidate fit also starts from the baseline's converged θ, so a
    candidate ends at or below the baseline objective. Any failed fit
    aborts the screen by raising.

    Args:
        table: Observation table.
        baseline: Baseline formula, e.g. 'rt ~ 1 + (1 | subject) + (1 | item)'.
        predictors: Terms to test one at a time. Output rows follow
            this order.
        contrasts: Coding for categorical fixed effects. Default: treatment.
        tol: Optimizer tolerance.
        max_iter: Optimizer iteration limit per fit.
        anomaly_tol: See compare().
        n_jobs: Candidate fits to run concurrently (threads). Fits share
            only the read-only table.

    Returns:
        ScreenSolution; `.table` is the N x 3 array
        [objective_diff, df_diff, p_value].

    Examples:
        >>> sol = screen(table, 'rt ~ 1 + (1 | subject) + (1 | item)',
        ...              ['freq', 'length', 'C(condition)'])
        >>> print(sol.summary())
    """
    if n_jobs < 1:
        raise ValidationError(f"n_jobs must be >= 1, got {n_jobs}")

    timer = Timer()
    timer.start()

    with timer.section('setup'):
        design = ScreenDesign.validate(table, baseline, predictors)

    def _fit(formula: Formula, theta_starts=()) -> LMMSolution:
        return fit_formula(
            formula, design.table,
            contrasts=contrasts, reml=False, tol=tol, max_iter=max_iter,
            theta_starts=theta_starts,
        )

    with timer.section('baseline'):
        base_fit = _fit(design.baseline)

    # Candidates share the baseline's random intercepts. Started at the
    # baseline θ, a candidate's deviance is at most the baseline objective.
    warm = (base_fit.params.theta,)

    def _fit_candidate(formula: Formula) -> LMMSolution:
        return _fit(formula, warm)

    with timer.section('candidates'):
        if n_jobs == 1:
            cand_fits = [_fit_candidate(f) for f in design.candidates]
        else:
            with ThreadPoolExecutor(max_workers=n_jobs) as pool:
                cand_fits = list(pool.map(_fit_candidate, design.candidates))

    with timer.section('compare'):
        rows = tuple(
            compare(base_fit, fit, predictor=name, anomaly_tol=anomaly_tol)
            for name, fit in zip(design.predictors, cand_fits)
        )

    timer.stop()

    warn_list = []
    if design.n_dropped:
        warn_list.append(
            f"Dropped {design.n_dropped} rows with missing values "
            f"in referenced columns"
        )
    for row in rows:
        if row.anomalous:
            warn_list.append(
                f"{row.predictor}: candidate objective exceeds baseline "
                f"(objective_diff={row.objective_diff:.6g})"
            )

    params = ScreenParams(
        predictors=design.predictors,
        rows=rows,
        baseline_formula=design.baseline,
        candidate_formulas=design.candidates,
        baseline_fit=base_fit,
        candidate_fits=tuple(cand_fits),
        n_obs=design.table.n_rows,
        n_dropped=design.n_dropped,
    )

    result = Result(
        params=params,
        info={
            'method': 'ML likelihood ratio',
            'baseline': str(design.baseline),
            'baseline_objective': base_fit.objective,
            'baseline_dof': base_fit.dof,
            'n_predictors': len(rows),
            'n_obs': design.table.n_rows,
            'n_dropped': design.n_dropped,
            'contrasts': (contrasts or ContrastConfig()).default,
            'n_jobs': n_jobs,
        },
        timing=timer.result(),
        backend_name='cpu_lrt_screen',
        warnings=tuple(warn_list),
    )

    return ScreenSolution(_result=result)


def screen_file(
    path: str | Path,
    baseline: Formula | str,
    predictors: Sequence[FixedTerm | str],
    *,
    delimiter: str | None = None,
    na_values: list[str] | None = None,
    **kwargs,
) -> ScreenSolution:
    """Read a delimited file and run screen() on it.

    Extra keyword arguments go to screen().
    """
    table = Table.from_file(path, delimiter=delimiter, na_values=na_values)
    return screen(table, baseline, predictors, **kwargs)
