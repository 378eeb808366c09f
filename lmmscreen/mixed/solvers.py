"""
Linear mixed model fitting.

Public API:
    lmm() — fit a linear mixed model with random intercepts by ML or REML
"""

from __future__ import annotations

import warnings
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike
from scipy.optimize import minimize
from scipy import stats

from lmmscreen.core.result import Result
from lmmscreen.core.compute.timing import Timer
from lmmscreen.core.exceptions import ValidationError

from lmmscreen.mixed._common import LMMParams, VarCompSummary
from lmmscreen.mixed._random_effects import (
    RandomEffectSpec, parse_random_effects, build_z_matrix, build_lambda,
    theta_lower_bounds, theta_start,
)
from lmmscreen.mixed._pls import PLSResult, solve_pls
from lmmscreen.mixed._deviance import profiled_deviance_lmm, deviance_from_pls
from lmmscreen.mixed.design import MixedDesign
from lmmscreen.mixed.solution import LMMSolution


def lmm(
    y: ArrayLike,
    X: ArrayLike,
    groups: dict[str, ArrayLike],
    *,
    reml: bool = True,
    tol: float = 1e-8,
    max_iter: int = 200,
    coefficient_names: tuple[str, ...] | None = None,
    theta_starts: Sequence[ArrayLike] = (),
) -> LMMSolution:
    """Fit a linear mixed model with one random intercept per grouping factor.

    Estimates fixed effects β, variance components and conditional modes
    (BLUPs) of the random effects by minimizing the profiled ML/REML
    deviance over θ (Bates et al. 2015) with L-BFGS-B.

    Args:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p). Include an intercept
            column if desired.
        groups: Grouping factor name → group label array, one random
            intercept each. Example: {'subject': subject_ids, 'item': item_ids}.
        reml: If True (default), use REML. Use ML (reml=False) for
            likelihood ratio tests between models with different fixed
            effects.
        tol: Convergence tolerance for the optimizer. Default 1e-8.
        max_iter: Maximum optimizer iterations. Default 200.
        coefficient_names: Labels for the columns of X. Default:
            '(Intercept)', 'X1', 'X2', ...
        theta_starts: Extra starting points for θ, one relative standard
            deviation per grouping factor, in `groups` order. The optimizer
            always starts from θ = 1 as well and keeps the lowest deviance.
            The θ of a fitted submodel with the same groups is a good
            choice: L-BFGS-B can stop early against the θ = 0 bound, and
            from there the larger model cannot end above the submodel.

    Returns:
        LMMSolution. A failed optimization is reported through
        `converged`, a RuntimeWarning and Result.warnings; callers that
        need it to be fatal check `converged` themselves.

    Examples:
        # Crossed random intercepts
        >>> result = lmm(y, X, groups={'subject': subj, 'item': item}, reml=False)
        >>> result.objective, result.dof
    """
    timer = Timer()
    timer.start()

    design = MixedDesign.validate(y, X, groups)

    if coefficient_names is None:
        coefficient_names = _make_coef_names(design.p)
    elif len(coefficient_names) != design.p:
        raise ValidationError(
            f"coefficient_names has {len(coefficient_names)} entries, "
            f"X has {design.p} columns"
        )

    with timer.section('setup'):
        specs = parse_random_effects(design.groups, design.n)
        Z = build_z_matrix(specs)
        lb = theta_lower_bounds(specs)
        bounds = [(lb[i], None) for i in range(len(specs))]
        starts = [theta_start(specs)] + [
            _check_theta_start(t, lb) for t in theta_starts
        ]

    with timer.section('optimization'):
        opt_result = None
        for start in starts:
            res = minimize(
                profiled_deviance_lmm,
                start,
                args=(design.X, Z, design.y, specs, reml),
                method='L-BFGS-B',
                bounds=bounds,
                options={'maxiter': max_iter, 'ftol': tol, 'gtol': tol * 10},
            )
            if opt_result is None or res.fun < opt_result.fun:
                opt_result = res

    converged = bool(opt_result.success)
    theta_hat = opt_result.x
    n_iter = int(opt_result.nit)

    if not converged:
        warnings.warn(
            f"LMM optimizer did not converge after {n_iter} iterations. "
            f"Message: {opt_result.message}",
            RuntimeWarning,
            stacklevel=2,
        )

    with timer.section('final_solve'):
        Lambda_hat = build_lambda(theta_hat, specs)
        pls = solve_pls(design.X, Z, design.y, Lambda_hat, reml=reml)

    with timer.section('variance_components'):
        var_comps = _extract_var_components(theta_hat, pls.sigma_sq, specs)
        n_groups_dict = {s.group_name: s.n_groups for s in specs}
        random_effs = _extract_blups(pls.b, specs)

    with timer.section('inference'):
        se = _compute_se(pls, design.X, Z, Lambda_hat)
        df_resid = design.n - design.p
        t_vals = pls.beta / se
        p_vals = 2.0 * stats.t.sf(np.abs(t_vals), df_resid)

    with timer.section('model_fit'):
        objective = deviance_from_pls(pls, design.n, design.p, reml)
        dof = design.p + len(theta_hat) + 1
        ll = -0.5 * objective
        aic = objective + 2.0 * dof
        bic = objective + np.log(design.n) * dof

    timer.stop()

    params = LMMParams(
        coefficients=pls.beta,
        coefficient_names=tuple(coefficient_names),
        se=se,
        df_residual=df_resid,
        t_values=t_vals,
        p_values=p_vals,
        var_components=tuple(var_comps),
        residual_variance=pls.sigma_sq,
        residual_std=float(np.sqrt(pls.sigma_sq)),
        objective=objective,
        dof=dof,
        log_likelihood=ll,
        reml=reml,
        aic=float(aic),
        bic=float(bic),
        n_obs=design.n,
        n_groups=n_groups_dict,
        converged=converged,
        n_iter=n_iter,
        random_effects=random_effs,
        fitted_values=pls.fitted,
        residuals=pls.residuals,
        theta=theta_hat,
    )

    warn_list = []
    if not converged:
        warn_list.append(f"Optimizer did not converge: {opt_result.message}")

    result = Result(
        params=params,
        info={
            'method': 'REML' if reml else 'ML',
            'optimizer': 'L-BFGS-B',
            'converged': converged,
            'n_iter': n_iter,
            'message': str(opt_result.message),
            'deviance': float(opt_result.fun),
            'n_starts': len(starts),
        },
        timing=timer.result(),
        backend_name='cpu_lmm',
        warnings=tuple(warn_list),
    )

    return LMMSolution(_result=result)


# =====================================================================
# Helpers
# =====================================================================

def _check_theta_start(theta: ArrayLike, lower: np.ndarray) -> np.ndarray:
    """Validate a caller-supplied θ start and clip it into the bounds."""
    theta = np.asarray(theta, dtype=np.float64).ravel()
    if theta.shape[0] != lower.shape[0]:
        raise ValidationError(
            f"theta start has {theta.shape[0]} elements, expected "
            f"{lower.shape[0]} (one per grouping factor)"
        )
    if not np.all(np.isfinite(theta)):
        raise ValidationError("theta start contains non-finite values")
    return np.maximum(theta, lower)


def _extract_var_components(
    theta: np.ndarray,
    sigma_sq: float,
    specs: list[RandomEffectSpec],
) -> list[VarCompSummary]:
    """Variance components from θ and σ²: σ²_k = σ² θ_k²."""
    return [
        VarCompSummary(
            group=spec.group_name,
            name='(Intercept)',
            variance=float(sigma_sq * theta_k ** 2),
            std_dev=float(np.sqrt(sigma_sq) * theta_k),
        )
        for spec, theta_k in zip(specs, theta)
    ]


def _extract_blups(b: np.ndarray, specs: list[RandomEffectSpec]) -> dict[str, np.ndarray]:
    """Split the stacked b vector into group → (J_k,) arrays."""
    result = {}
    offset = 0
    for spec in specs:
        result[spec.group_name] = b[offset:offset + spec.n_groups].copy()
        offset += spec.n_groups
    return result


def _compute_se(pls: PLSResult, X: np.ndarray, Z: np.ndarray,
                Lambda: np.ndarray) -> np.ndarray:
    """Standard errors of β̂ from Var(β̂) = σ² (X'V*⁻¹X)⁻¹, V* = ZΛΛ'Z' + I."""
    n = X.shape[0]
    V_star = Z @ Lambda @ Lambda.T @ Z.T + np.eye(n)
    XtVX = X.T @ np.linalg.solve(V_star, X)
    try:
        C = np.linalg.inv(XtVX)
    except np.linalg.LinAlgError:
        C = np.linalg.pinv(XtVX)

    vcov = pls.sigma_sq * C
    return np.sqrt(np.maximum(np.diag(vcov), 0.0))


def _make_coef_names(p: int) -> tuple[str, ...]:
    """Default coefficient names."""
    return ('(Intercept)',) + tuple(f'X{i}' for i in range(1, p))
