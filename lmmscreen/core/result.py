"""
Generic result container for lmmscreen computations.

Every fit and every screen returns its payload inside a Result envelope,
so timing, diagnostics and warnings travel with the numbers.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (method, convergence, row counts)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) so a fitted model is never mutated after creation
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific parameters (LMMParams, ScreenParams)
        info: Structured metadata (method, convergence, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the code path that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LMMParams(...),
        ...     info={'method': 'ML', 'converged': True, 'n_iter': 12},
        ...     timing={'total_seconds': 0.2, 'optimization': 0.15},
        ...     backend_name='cpu_lmm',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
