"""
Design validation for linear mixed models.

MixedDesign validates and organizes the inputs to lmm(): the response y,
the fixed effects matrix X, and the grouping variables, one random
intercept per grouping variable.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from lmmscreen.core.exceptions import ValidationError, DimensionError
from lmmscreen.core.validation import (
    check_array, check_finite, check_1d, check_consistent_length,
    check_min_samples,
)


@dataclass(frozen=True)
class MixedDesign:
    """Validated design for a linear mixed model.

    Attributes:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p).
        groups: Grouping factor name → group labels (n,).
        n: Number of observations.
        p: Number of fixed effect columns.
    """
    y: NDArray
    X: NDArray
    groups: dict[str, NDArray]
    n: int
    p: int

    @staticmethod
    def validate(
        y: NDArray,
        X: NDArray,
        groups: dict[str, NDArray],
    ) -> 'MixedDesign':
        """Validate inputs and create a MixedDesign.

        Args:
            y: Response vector.
            X: Fixed effects design matrix. A 1-D X is a single column;
               include an intercept column explicitly if wanted.
            groups: Grouping factor name → group label array.

        Raises:
            ValidationError: On invalid inputs.
            DimensionError: On inconsistent lengths.
        """
        y = check_array(y, "y").ravel()
        check_finite(y, "y")
        check_min_samples(y, 3, "y")
        n = len(y)

        X = check_array(X, "X")
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        check_consistent_length(y, X, names=("y", "X"))
        check_finite(X, "X")
        p = X.shape[1]
        if n <= p:
            raise ValidationError(
                f"Need more observations than fixed effects, got n={n}, p={p}"
            )

        if not groups:
            raise ValidationError("At least one grouping factor required")

        groups_validated = {}
        for name, g in groups.items():
            g = np.asarray(g)
            check_1d(g, f"groups['{name}']")
            if g.shape[0] != n:
                raise DimensionError(
                    f"Group '{name}' has {g.shape[0]} elements, expected {n}"
                )
            n_levels = len(np.unique(g))
            if n_levels < 2:
                raise ValidationError(
                    f"Group '{name}' has only {n_levels} level(s), "
                    f"need at least 2"
                )
            groups_validated[name] = g

        return MixedDesign(
            y=y,
            X=X,
            groups=groups_validated,
            n=n,
            p=p,
        )
