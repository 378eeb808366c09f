"""
Penalized Least Squares (PLS) solver for Linear Mixed Models.

For fixed θ (and hence fixed Λ_θ), solve

    minimize ‖y - Xβ - ZΛu‖² + ‖u‖²

for the spherical random effects u = Λ⁻¹b and the profiled fixed effects
β. σ² is then profiled out in closed form from the penalized RSS.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48. Section 2.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla


@dataclass(frozen=True)
class PLSResult:
    """Result from penalized least squares solve.

    Attributes:
        beta: Fixed effects estimates (p,).
        u: Spherical random effects (q,).
        b: Conditional modes b = Λu (q,).
        sigma_sq: Profiled residual variance.
        pwrss: Penalized residual sum of squares ‖y - Xβ - Zb‖² + ‖u‖².
        L: Cholesky factor of (Λ'Z'ZΛ + I), shape (q, q).
        RX: Cholesky factor of the Schur complement for β, shape (p, p).
        fitted: Xβ + Zb (n,).
        residuals: y - fitted (n,).
    """
    beta: NDArray
    u: NDArray
    b: NDArray
    sigma_sq: float
    pwrss: float
    L: NDArray
    RX: NDArray
    fitted: NDArray
    residuals: NDArray

    @property
    def log_det_L(self) -> float:
        """log|L|² = 2 Σ log diag(L)."""
        return float(2.0 * np.sum(np.log(np.maximum(np.diag(self.L), 1e-20))))

    @property
    def log_det_RX(self) -> float:
        """log|RX|² = 2 Σ log |diag(RX)|."""
        return float(2.0 * np.sum(np.log(np.maximum(np.abs(np.diag(self.RX)), 1e-20))))


def solve_pls(
    X: NDArray,
    Z: NDArray,
    y: NDArray,
    Lambda: NDArray,
    reml: bool = True,
) -> PLSResult:
    """Solve the penalized least squares problem at a fixed Λ_θ.

    Block elimination of the penalized normal equations

        [Λ'Z'ZΛ + I   Λ'Z'X ] [u]   [Λ'Z'y]
        [X'ZΛ         X'X   ] [β] = [X'y  ]

    1. L = chol(Λ'Z'ZΛ + I)
    2. cu = L⁻¹Λ'Z'y, CX = L⁻¹Λ'Z'X
    3. RX RX' = X'X - CX'CX, solve for β
    4. back-solve L'u = L⁻¹Λ'Z'(y - Xβ)

    Args:
        X: Fixed effects design matrix (n, p).
        Z: Random effects design matrix (n, q).
        y: Response vector (n,).
        Lambda: Relative covariance factor (q, q), block-diagonal.
        reml: σ² divides pwrss by (n - p) if True, by n if False.
    """
    n, p = X.shape
    q = Z.shape[1]

    ZLam = Z @ Lambda

    LtL = ZLam.T @ ZLam + np.eye(q)
    try:
        L = np.linalg.cholesky(LtL)
    except np.linalg.LinAlgError:
        LtL += 1e-10 * np.eye(q)
        L = np.linalg.cholesky(LtL)

    ZLam_t_y = ZLam.T @ y
    ZLam_t_X = ZLam.T @ X

    cu = sla.solve_triangular(L, ZLam_t_y, lower=True)
    CX = sla.solve_triangular(L, ZLam_t_X, lower=True)

    RtR = X.T @ X - CX.T @ CX
    rhs_beta = X.T @ y - CX.T @ cu

    try:
        RX = np.linalg.cholesky(RtR)
        tmp = sla.solve_triangular(RX, rhs_beta, lower=True)
        beta = sla.solve_triangular(RX.T, tmp, lower=False)
    except np.linalg.LinAlgError:
        # Near-singular Schur complement at extreme θ; X itself is checked
        # for full rank before fitting.
        beta, _, _, _ = np.linalg.lstsq(RtR, rhs_beta, rcond=None)
        eigvals = np.maximum(np.linalg.eigvalsh(RtR), 1e-20)
        RX = np.diag(np.sqrt(eigvals))

    cu_final = sla.solve_triangular(L, ZLam_t_y - ZLam_t_X @ beta, lower=True)
    u = sla.solve_triangular(L.T, cu_final, lower=False)
    b = Lambda @ u

    fitted = X @ beta + Z @ b
    residuals = y - fitted
    pwrss = float(residuals @ residuals) + float(u @ u)

    sigma_sq = pwrss / (n - p) if reml else pwrss / n

    return PLSResult(
        beta=beta,
        u=u,
        b=b,
        sigma_sq=sigma_sq,
        pwrss=pwrss,
        L=L,
        RX=RX,
        fitted=fitted,
        residuals=residuals,
    )
