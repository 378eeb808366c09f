"""
Predictor screens: likelihood ratio tests of single added fixed effects.

Public API:
    screen()        — fit baseline and one candidate per predictor, compare each
    screen_file()   — screen() on a delimited file
    fit_formula()   — fit one formula to a table (ML by default)
    compare()       — likelihood ratio test of a candidate against a baseline
    ScreenSolution  — result wrapper with the N x 3 comparison table
    ComparisonRow   — one row of that table
"""

from lmmscreen.lrt.solvers import screen, screen_file, fit_formula, compare
from lmmscreen.lrt.solution import ScreenSolution
from lmmscreen.lrt._common import ComparisonRow, ScreenParams
from lmmscreen.lrt.design import ScreenDesign

__all__ = [
    "screen",
    "screen_file",
    "fit_formula",
    "compare",
    "ScreenSolution",
    "ComparisonRow",
    "ScreenParams",
    "ScreenDesign",
]
