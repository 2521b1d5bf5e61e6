"""
Generic result container for PyGAMM computations.

Both a single model fit and a whole Monte Carlo run are wrapped in the
same envelope, so timing, warnings and provenance are handled once.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (method, convergence, diagnostics)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) so results can be shared across workers
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


def _default_provenance() -> dict[str, str]:
    """Version metadata of the libraries that produced a result."""
    import numpy
    import pandas
    import scipy

    from pygamm import __version__

    return {
        'pygamm_version': __version__,
        'numpy_version': numpy.__version__,
        'scipy_version': scipy.__version__,
        'pandas_version': pandas.__version__,
    }


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific payload (coefficients, rejection counts, ...)
        info: Structured metadata (method, convergence, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the code path that produced this result
        warnings: Non-fatal issues encountered during computation
        provenance: Library versions, filled in automatically

    Examples:
        >>> Result(
        ...     params=GAMMParams(...),
        ...     info={'method': 'REML', 'converged': True, 'n_iter': 14},
        ...     timing={'total_seconds': 0.4, 'optimization': 0.3},
        ...     backend_name='cpu_gamm',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    provenance: dict[str, str] = field(default_factory=_default_provenance)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
