"""
Random intercept specification, Z matrix construction, and Λ_θ parameterization.

This module handles:
1. Turning grouping columns into RandomEffectSpec
2. Building the random effects design matrix Z
3. Constructing the relative covariance factor Λ_θ from the θ parameter vector
4. Computing θ bounds and starting values for the optimizer

The θ parameterization follows Bates et al. (2015). With one random
intercept per grouping factor, θ_k is the ratio σ_k / σ and the relative
covariance factor is diagonal: Λ_θ = diag(θ_1 I_{J_1}, θ_2 I_{J_2}, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from lmmscreen.core.exceptions import ValidationError


@dataclass(frozen=True)
class RandomEffectSpec:
    """Random intercept of one grouping factor.

    Attributes:
        group_name: Name of the grouping factor (e.g. 'subject').
        group_ids: 0-indexed consecutive integer level per observation (n,).
        Z_block: Indicator matrix, shape (n, J).
        n_groups: Number of levels J.
    """
    group_name: str
    group_ids: NDArray
    Z_block: NDArray
    n_groups: int


def parse_random_effects(groups: dict[str, NDArray], n: int) -> list[RandomEffectSpec]:
    """Build one RandomEffectSpec per grouping factor, in dict order.

    Raises:
        ValidationError: A grouping array is not of length n.
    """
    specs = []
    for group_name, labels in groups.items():
        labels = np.asarray(labels)
        if labels.shape[0] != n:
            raise ValidationError(
                f"Group '{group_name}' has {labels.shape[0]} elements, "
                f"expected {n}"
            )

        levels, group_ids = np.unique(labels, return_inverse=True)
        group_ids = group_ids.ravel()

        Z_block = np.zeros((n, len(levels)), dtype=np.float64)
        Z_block[np.arange(n), group_ids] = 1.0

        specs.append(RandomEffectSpec(
            group_name=group_name,
            group_ids=group_ids,
            Z_block=Z_block,
            n_groups=len(levels),
        ))

    return specs


def build_z_matrix(specs: list[RandomEffectSpec]) -> NDArray:
    """Z = [Z_1 | Z_2 | ...], shape (n, Σ J_k)."""
    if not specs:
        raise ValidationError("At least one random effect specification required")
    return np.hstack([spec.Z_block for spec in specs])


def build_lambda(theta: NDArray, specs: list[RandomEffectSpec]) -> NDArray:
    """Diagonal Λ_θ, θ_k repeated over the J_k levels of factor k."""
    theta = np.asarray(theta, dtype=np.float64)
    if theta.shape[0] != len(specs):
        raise ValidationError(
            f"theta has {theta.shape[0]} elements, expected {len(specs)}"
        )
    return np.diag(np.repeat(theta, [spec.n_groups for spec in specs]))


def theta_lower_bounds(specs: list[RandomEffectSpec]) -> NDArray:
    """θ_k >= 0: a relative standard deviation."""
    return np.zeros(len(specs), dtype=np.float64)


def theta_start(specs: list[RandomEffectSpec]) -> NDArray:
    """Starting θ: σ_k = σ for every factor."""
    return np.ones(len(specs), dtype=np.float64)
