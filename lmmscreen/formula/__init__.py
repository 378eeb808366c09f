"""
Model formulas and fixed-effects design matrices.

Public API:
    Formula, Response, FixedTerm, RandomIntercept  — typed formula values
    candidate_formulas()  — baseline + one term, per predictor
    ContrastConfig        — categorical coding scheme
    build_fixed_matrix()  — formula + table -> FixedEffectsMatrix
"""

from lmmscreen.formula.terms import (
    Formula, Response, FixedTerm, RandomIntercept, candidate_formulas,
)
from lmmscreen.formula.contrasts import (
    ContrastConfig, FixedEffectsMatrix, build_fixed_matrix,
    encode_treatment, encode_deviation,
)

__all__ = [
    "Formula",
    "Response",
    "FixedTerm",
    "RandomIntercept",
    "candidate_formulas",
    "ContrastConfig",
    "FixedEffectsMatrix",
    "build_fixed_matrix",
    "encode_treatment",
    "encode_deviation",
]
