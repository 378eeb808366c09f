"""
Common data types for linear mixed models.

Frozen parameter payloads that go inside Result[P] envelopes. Each
payload is a pure data container — no methods, no computation.
"""

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class VarCompSummary:
    """Variance component of one random intercept.

    Attributes:
        group: Grouping factor name (e.g. 'subject').
        name: Term name, always '(Intercept)'.
        variance: Estimated variance σ²_b for this component.
        std_dev: Standard deviation (sqrt of variance).
    """
    group: str
    name: str
    variance: float
    std_dev: float


@dataclass(frozen=True)
class LMMParams:
    """
    Parameter payload for a fitted linear mixed model.

    `objective` and `dof` are what model comparison reads: the minimized
    deviance (-2 log-likelihood, or the REML criterion) and the number of
    free parameters (fixed coefficients + θ elements + σ).
    """
    # Fixed effects
    coefficients: NDArray              # β̂ (p,)
    coefficient_names: tuple[str, ...]
    se: NDArray                        # standard errors of β̂ (p,)
    df_residual: int                   # n - p, reference df for t-tests
    t_values: NDArray                  # β̂ / se (p,)
    p_values: NDArray                  # two-sided, t(n - p) (p,)

    # Random effects
    var_components: tuple[VarCompSummary, ...]
    residual_variance: float           # σ²
    residual_std: float                # σ

    # Model fit
    objective: float                   # -2 log-likelihood at the optimum
    dof: int                           # free parameters
    log_likelihood: float
    reml: bool
    aic: float
    bic: float
    n_obs: int
    n_groups: dict[str, int]           # grouping factor → number of levels

    # Convergence
    converged: bool
    n_iter: int

    # Random effects conditional modes (BLUPs)
    random_effects: dict[str, NDArray]  # group → (n_levels,)

    # Predictions
    fitted_values: NDArray             # Xβ̂ + Zb̂ (n,)
    residuals: NDArray                 # y - fitted (n,)

    # Internal
    theta: NDArray                     # converged θ parameters
