"""
Typed model formulas.

A Formula is a plain value: a response, an optional intercept, a tuple of
fixed-effect terms and a tuple of random-intercept terms. Adding a term
returns a new Formula, so a baseline can be extended once per candidate
predictor without any candidate seeing another's term.

    >>> base = Formula.parse("rt ~ 1 + (1 | subject) + (1 | item)")
    >>> cand = base.add_term("freq")
    >>> str(cand)
    'rt ~ 1 + freq + (1 | subject) + (1 | item)'
    >>> str(base)
    'rt ~ 1 + (1 | subject) + (1 | item)'

The text notation is a small Wilkinson/lme4 subset: terms joined by '+',
'1' or '0' for the intercept, 'C(x)' to force categorical coding of x,
and '(1 | g)' for a random intercept per level of g.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, Union

from lmmscreen.core.exceptions import FormulaError, ValidationError


_NAME = r'[A-Za-z_][A-Za-z0-9_.]*'
_NAME_RE = re.compile(rf'^{_NAME}$')
_CATEGORICAL_RE = re.compile(rf'^C\(\s*({_NAME})\s*\)$')
_RANDOM_RE = re.compile(rf'^\(\s*1\s*\|\s*({_NAME})\s*\)$')


@dataclass(frozen=True)
class Response:
    """Left-hand side of a formula: one numeric column."""
    column: str

    def __str__(self) -> str:
        return self.column


@dataclass(frozen=True)
class FixedTerm:
    """A fixed-effect predictor column.

    Attributes:
        column: Table column name.
        categorical: True forces contrast coding, False forces a numeric
            column, None infers from the column dtype at fit time.
    """
    column: str
    categorical: bool | None = None

    def __str__(self) -> str:
        return f'C({self.column})' if self.categorical else self.column


@dataclass(frozen=True)
class RandomIntercept:
    """A per-group random intercept, written (1 | group)."""
    group: str

    def __str__(self) -> str:
        return f'(1 | {self.group})'


Term = Union[FixedTerm, RandomIntercept]


@dataclass(frozen=True)
class Formula:
    """Immutable mixed-model formula.

    Attributes:
        response: The response column.
        fixed: Fixed-effect terms in model-matrix column order.
        random: Random-intercept terms, one per grouping column.
        intercept: Whether the fixed part carries an intercept column.
    """
    response: Response
    fixed: tuple[FixedTerm, ...] = ()
    random: tuple[RandomIntercept, ...] = ()
    intercept: bool = True

    def __post_init__(self):
        if isinstance(self.response, str):
            object.__setattr__(self, 'response', Response(self.response))
        object.__setattr__(
            self, 'fixed', tuple(_as_fixed(t) for t in self.fixed)
        )
        object.__setattr__(
            self, 'random',
            tuple(RandomIntercept(t) if isinstance(t, str) else t for t in self.random),
        )

        fixed_cols = [t.column for t in self.fixed]
        if len(set(fixed_cols)) != len(fixed_cols):
            raise FormulaError(f"Duplicate fixed-effect terms: {fixed_cols}")
        groups = [t.group for t in self.random]
        if len(set(groups)) != len(groups):
            raise FormulaError(f"Duplicate random-intercept groups: {groups}")
        if self.response.column in fixed_cols:
            raise FormulaError(
                f"Response '{self.response.column}' also appears as a fixed effect"
            )
        if self.response.column in groups:
            raise FormulaError(
                f"Response '{self.response.column}' also appears as a grouping factor"
            )

    # --- Term algebra ---

    def has_term(self, term: Term | str) -> bool:
        """True if a term on the same column (or group) is present."""
        if isinstance(term, RandomIntercept):
            return term.group in self.group_columns
        return _as_fixed(term).column in self.fixed_columns

    def add_term(self, term: Term | str) -> Formula:
        """Return a new formula with one more term.

        Strings are read as fixed-effect terms ('x' or 'C(x)').

        Raises:
            FormulaError: If the term is already present.
        """
        if not isinstance(term, RandomIntercept):
            term = _as_fixed(term)
        if self.has_term(term):
            raise FormulaError(f"Term '{term}' is already in formula '{self}'")
        if isinstance(term, RandomIntercept):
            return replace(self, random=self.random + (term,))
        return replace(self, fixed=self.fixed + (term,))

    def is_nested_in(self, other: Formula) -> bool:
        """True if every term of this formula is also in `other`."""
        return (
            self.response == other.response
            and (not self.intercept or other.intercept)
            and set(self.fixed_columns) <= set(other.fixed_columns)
            and set(self.group_columns) <= set(other.group_columns)
        )

    # --- Column bookkeeping ---

    @property
    def fixed_columns(self) -> tuple[str, ...]:
        return tuple(t.column for t in self.fixed)

    @property
    def group_columns(self) -> tuple[str, ...]:
        return tuple(t.group for t in self.random)

    def columns(self) -> tuple[str, ...]:
        """Every referenced column: response, fixed, then grouping."""
        names = (self.response.column,) + self.fixed_columns + self.group_columns
        return tuple(dict.fromkeys(names))

    # --- Text form ---

    def __str__(self) -> str:
        parts = ['1' if self.intercept else '0']
        parts += [str(t) for t in self.fixed]
        parts += [str(t) for t in self.random]
        return f"{self.response} ~ {' + '.join(parts)}"

    @classmethod
    def parse(cls, text: str) -> Formula:
        """Parse 'y ~ 1 + x + C(f) + (1 | g)' notation.

        Raises:
            FormulaError: On anything outside the supported subset.
        """
        if text.count('~') != 1:
            raise FormulaError(f"Formula must contain exactly one '~': {text!r}")
        lhs, rhs = (s.strip() for s in text.split('~'))
        if not _NAME_RE.match(lhs):
            raise FormulaError(f"Response must be a single column name, got {lhs!r}")

        intercept: bool | None = None
        fixed: list[FixedTerm] = []
        random: list[RandomIntercept] = []

        for token in _split_terms(rhs, text):
            if token in ('0', '1'):
                if intercept is not None and intercept != (token == '1'):
                    raise FormulaError(f"Conflicting intercept terms in {text!r}")
                intercept = token == '1'
                continue
            match = _RANDOM_RE.match(token)
            if match:
                random.append(RandomIntercept(match.group(1)))
                continue
            fixed.append(_parse_fixed(token))

        return cls(
            response=Response(lhs),
            fixed=tuple(fixed),
            random=tuple(random),
            intercept=True if intercept is None else intercept,
        )


def candidate_formulas(
    baseline: Formula,
    predictors: Iterable[FixedTerm | str],
) -> list[Formula]:
    """Build one candidate per predictor: baseline plus that single term.

    Output order matches `predictors`. The baseline is left untouched.

    Raises:
        ValidationError: If no predictors are given.
        FormulaError: On duplicate predictors, or a predictor that is
            already a term of the baseline.
    """
    terms = [_as_fixed(p) for p in predictors]
    if not terms:
        raise ValidationError("At least one candidate predictor is required")

    names = [t.column for t in terms]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise FormulaError(f"Duplicate candidate predictors: {dupes}")

    return [baseline.add_term(term) for term in terms]


def _as_fixed(term: FixedTerm | str) -> FixedTerm:
    if isinstance(term, FixedTerm):
        return term
    if isinstance(term, str):
        return _parse_fixed(term.strip())
    raise FormulaError(f"Expected a column name or FixedTerm, got {type(term).__name__}")


def _parse_fixed(token: str) -> FixedTerm:
    match = _CATEGORICAL_RE.match(token)
    if match:
        return FixedTerm(match.group(1), categorical=True)
    if _NAME_RE.match(token):
        return FixedTerm(token)
    raise FormulaError(f"Unsupported term {token!r}")


def _split_terms(rhs: str, text: str) -> list[str]:
    """Split on top-level '+' (not inside parentheses)."""
    tokens = []
    depth = 0
    current = []
    for ch in rhs:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                raise FormulaError(f"Unbalanced parentheses in {text!r}")
        if ch == '+' and depth == 0:
            tokens.append(''.join(current).strip())
            current = []
        else:
            current.append(ch)
    if depth != 0:
        raise FormulaError(f"Unbalanced parentheses in {text!r}")
    tokens.append(''.join(current).strip())

    if any(not t for t in tokens):
        raise FormulaError(f"Empty term in {text!r}")
    return tokens
