"""
Design validation for predictor screens.

ScreenDesign resolves the baseline formula, builds the candidate
formulas and restricts the table to the rows every model can use, so
that baseline and candidates are fit to identical observations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from lmmscreen.core.exceptions import FormulaError, ValidationError
from lmmscreen.core.table import Table
from lmmscreen.formula.terms import Formula, FixedTerm, candidate_formulas


@dataclass(frozen=True)
class ScreenDesign:
    """Validated inputs for screen().

    Attributes:
        table: Complete-case table over every referenced column.
        baseline: Baseline formula.
        candidates: One formula per predictor, in predictor order.
        predictors: Label of each candidate's added term.
        n_dropped: Rows removed for missing values.
    """
    table: Table
    baseline: Formula
    candidates: tuple[Formula, ...]
    predictors: tuple[str, ...]
    n_dropped: int

    @staticmethod
    def validate(
        table: Table,
        baseline: Formula | str,
        predictors: Sequence[FixedTerm | str],
    ) -> 'ScreenDesign':
        """Validate a screen and create a ScreenDesign.

        Args:
            table: Observation table.
            baseline: Baseline formula or its text form.
            predictors: Column names ('freq', 'C(condition)') or FixedTerms.

        Raises:
            FormulaError: Malformed baseline, duplicate predictors, a
                predictor already in the baseline, or a candidate that
                does not nest the baseline.
            MissingColumnError: A referenced column is not in the table.
            ValidationError: No random intercepts, no predictors, or too
                few complete rows.
        """
        if isinstance(baseline, str):
            baseline = Formula.parse(baseline)
        if not baseline.random:
            raise ValidationError(
                f"Baseline '{baseline}' has no random intercepts; "
                f"a mixed model needs at least one (1 | group) term"
            )

        candidates = candidate_formulas(baseline, predictors)
        for formula in candidates:
            if not baseline.is_nested_in(formula):
                raise FormulaError(
                    f"Candidate '{formula}' does not contain baseline '{baseline}'"
                )

        referenced: list[str] = []
        for formula in candidates:
            referenced.extend(formula.columns())
        referenced = list(dict.fromkeys(referenced))
        table.require(referenced)

        complete = table.complete_cases(referenced)
        if complete.n_rows < 3:
            raise ValidationError(
                f"Only {complete.n_rows} complete rows over columns {referenced}"
            )

        return ScreenDesign(
            table=complete,
            baseline=baseline,
            candidates=tuple(candidates),
            predictors=tuple(str(f.fixed[-1]) for f in candidates),
            n_dropped=table.n_rows - complete.n_rows,
        )
