"""
Linear mixed models.

Public API:
    lmm()           — fit a linear mixed model (ML or REML)
    LMMSolution     — fitted model; exposes objective and dof
    VarCompSummary  — one variance component
"""

from lmmscreen.mixed.solvers import lmm
from lmmscreen.mixed.solution import LMMSolution
from lmmscreen.mixed._common import LMMParams, VarCompSummary

__all__ = [
    "lmm",
    "LMMSolution",
    "LMMParams",
    "VarCompSummary",
]
