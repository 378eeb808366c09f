"""
Solution wrapper for linear mixed models.

LMMSolution wraps Result[LMMParams] and provides an R-style summary and
property accessors, including the `objective` and `dof` that model
comparison reads.
"""

from __future__ import annotations

from numpy.typing import NDArray

from lmmscreen.core.result import Result
from lmmscreen.mixed._common import LMMParams, VarCompSummary


def significance_stars(p: float) -> str:
    """Return significance stars like R."""
    if p < 0.001:
        return '***'
    elif p < 0.01:
        return '**'
    elif p < 0.05:
        return '*'
    elif p < 0.1:
        return '.'
    else:
        return ' '


def format_pvalue(p: float) -> str:
    """Format p-value like R."""
    if p < 2e-16:
        return '< 2e-16'
    elif p < 0.001:
        return f'{p:.2e}'
    else:
        return f'{p:.4f}'


class LMMSolution:
    """Fitted linear mixed model.

    Immutable: every accessor reads from the frozen Result payload.
    """

    def __init__(self, _result: Result[LMMParams]):
        self._result = _result

    @property
    def params(self) -> LMMParams:
        return self._result.params

    @property
    def result(self) -> Result[LMMParams]:
        return self._result

    # --- Fixed effects ---

    @property
    def coefficients(self) -> NDArray:
        """Fixed effect estimates β̂."""
        return self.params.coefficients

    @property
    def fixef(self) -> dict[str, float]:
        """Fixed effects as name → value dict."""
        return dict(zip(self.params.coefficient_names, self.params.coefficients))

    @property
    def se(self) -> NDArray:
        return self.params.se

    @property
    def t_values(self) -> NDArray:
        return self.params.t_values

    @property
    def p_values(self) -> NDArray:
        """Two-sided p-values for fixed effects on n - p df."""
        return self.params.p_values

    # --- Random effects ---

    @property
    def ranef(self) -> dict[str, NDArray]:
        """Random effects (BLUPs / conditional modes) per grouping factor."""
        return self.params.random_effects

    @property
    def var_components(self) -> tuple[VarCompSummary, ...]:
        return self.params.var_components

    # --- Model fit ---

    @property
    def objective(self) -> float:
        """Minimized deviance, -2 log-likelihood. Lower is better."""
        return self.params.objective

    @property
    def dof(self) -> int:
        """Free parameters: fixed coefficients + θ elements + σ."""
        return self.params.dof

    @property
    def log_likelihood(self) -> float:
        return self.params.log_likelihood

    @property
    def aic(self) -> float:
        return self.params.aic

    @property
    def bic(self) -> float:
        return self.params.bic

    @property
    def reml(self) -> bool:
        return self.params.reml

    @property
    def n_obs(self) -> int:
        return self.params.n_obs

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    @property
    def converged(self) -> bool:
        return self.params.converged

    # --- Summary ---

    def summary(self) -> str:
        """R-style summary in the layout of lme4::summary(lmer(...))."""
        params = self.params
        method = 'REML' if params.reml else 'maximum likelihood'

        lines = [f"Linear mixed model fit by {method}", ""]

        lines.append(
            f" {'AIC':>10s} {'BIC':>10s} {'logLik':>10s} {'deviance':>10s} {'df':>4s}"
        )
        lines.append(
            f" {params.aic:10.1f} {params.bic:10.1f} {params.log_likelihood:10.1f} "
            f"{params.objective:10.1f} {params.dof:4d}"
        )
        lines.append("")

        lines.append("Random effects:")
        lines.append(f" {'Groups':<12s} {'Name':<15s} {'Variance':>10s} "
                     f"{'Std.Dev.':>10s}")

        for vc in params.var_components:
            lines.append(
                f" {vc.group:<12s} {vc.name:<15s} {vc.variance:10.4f} "
                f"{vc.std_dev:10.4f}"
            )

        lines.append(
            f" {'Residual':<12s} {'':<15s} {params.residual_variance:10.4f} "
            f"{params.residual_std:10.4f}"
        )
        lines.append("")

        group_parts = ', '.join(
            f'{name}, {n}' for name, n in params.n_groups.items()
        )
        lines.append(f"Number of obs: {params.n_obs}, groups:  {group_parts}")
        lines.append("")

        lines.append("Fixed effects:")
        lines.append(
            f" {'':>15s} {'Estimate':>10s} {'Std. Error':>10s} "
            f"{'t value':>10s} {'Pr(>|t|)':>10s} {'':>4s}"
        )
        for i, name in enumerate(params.coefficient_names):
            p = params.p_values[i]
            lines.append(
                f" {name:>15s} {params.coefficients[i]:10.4f} "
                f"{params.se[i]:10.4f} {params.t_values[i]:10.3f} "
                f"{format_pvalue(p):>10s} {significance_stars(p)}"
            )

        lines.append("---")
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")

        if not params.converged:
            lines.append("")
            lines.append("WARNING: Model did not converge")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        method = 'REML' if self.params.reml else 'ML'
        return (
            f"LMMSolution({method}, "
            f"n={self.params.n_obs}, "
            f"fixed={len(self.params.coefficients)}, "
            f"objective={self.params.objective:.4f}, "
            f"dof={self.params.dof})"
        )
