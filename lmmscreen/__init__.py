"""
lmmscreen: likelihood ratio screening of fixed-effect predictors in
linear mixed models.

Fit a baseline model (response ~ intercept + random intercepts), add each
candidate predictor on its own, and test the improvement in ML deviance
with a chi-squared likelihood ratio test.

Submodules:
    core: Table loading, Result envelope, exceptions, validation
    formula: Typed formulas and contrast-coded design matrices
    mixed: Linear mixed model fitting (profiled ML/REML deviance)
    lrt: Baseline-vs-candidate likelihood ratio screens
"""

__version__ = "0.1.0"

from lmmscreen import core
from lmmscreen import formula
from lmmscreen import mixed
from lmmscreen import lrt

from lmmscreen.core import Table
from lmmscreen.formula import Formula, FixedTerm, RandomIntercept, ContrastConfig
from lmmscreen.mixed import lmm, LMMSolution
from lmmscreen.lrt import (
    screen, screen_file, fit_formula, compare, ScreenSolution, ComparisonRow,
)

__all__ = [
    "__version__",
    "core",
    "formula",
    "mixed",
    "lrt",
    "Table",
    "Formula",
    "FixedTerm",
    "RandomIntercept",
    "ContrastConfig",
    "lmm",
    "LMMSolution",
    "screen",
    "screen_file",
    "fit_formula",
    "compare",
    "ScreenSolution",
    "ComparisonRow",
]
