"""
Common data structures for the type-I/type-II error simulation.

FitResult and IterationResult are the immutable per-iteration records
produced by the backends; SimulationParams is the summarized payload
wrapped by Result[P] and exposed through SimulationSolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


# Fit outcomes
STATUS_OK = 'ok'
STATUS_FAILED = 'failed'
STATUS_MISSING = 'missing'

# Failure policies
ON_FAILURE_EXCLUDE = 'exclude'
ON_FAILURE_RETRY = 'retry'
ON_FAILURE_NONSIGNIFICANT = 'nonsignificant'
FAILURE_POLICIES = (ON_FAILURE_EXCLUDE, ON_FAILURE_RETRY, ON_FAILURE_NONSIGNIFICANT)


@dataclass(frozen=True)
class FitResult:
    """
    Outcome of fitting one model variant to one sample.

    Attributes:
        variant: Name of the model variant.
        iteration: Iteration index (0-based).
        status: 'ok', 'failed' or 'missing'.
        parametric_p: p-values of the label's parametric terms, one per
            non-reference level. Empty unless status is 'ok'.
        smooth_p: p-values of the label's difference smooths. Empty for
            variants without difference smooths.
        converged: Optimizer convergence flag (False when the fit failed).
        attempts: Number of samples fitted (> 1 only under 'retry').
        warnings: Warning messages raised during the fit.
        error: Failure reason, or None.
        elapsed: Wall time of the fit in seconds.
    """
    variant: str
    iteration: int
    status: str
    parametric_p: tuple[float, ...] = ()
    smooth_p: tuple[float, ...] = ()
    converged: bool = False
    attempts: int = 1
    warnings: tuple[str, ...] = ()
    error: str | None = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class IterationResult:
    """
    All fits of one iteration (one sample, every variant).

    Attributes:
        iteration: Iteration index (0-based).
        fits: One FitResult per variant, in variant order.
        group_sizes: Number of subjects labelled with each level.
        elapsed: Wall time of the iteration in seconds.
    """
    iteration: int
    fits: tuple[FitResult, ...]
    group_sizes: tuple[int, ...] = ()
    elapsed: float = 0.0


@dataclass(frozen=True)
class SimulationParams:
    """
    Parameter payload for a simulation run.

    Arrays are indexed by variant (in ``variant_names`` order). Rates are
    NaN where a variant has no valid p-values of that kind.
    """
    fits: tuple[FitResult, ...]
    variant_names: tuple[str, ...]
    n_iter: int
    alpha: float
    conf_level: float

    # Per-variant outcome counts
    n_ok: NDArray[np.int_]                     # (v,)
    n_failed: NDArray[np.int_]                 # (v,)
    n_missing: NDArray[np.int_]                # (v,)

    # Rejections / denominators
    n_parametric: NDArray[np.int_]             # (v,)
    parametric_rejections: NDArray[np.int_]    # (v,)
    n_smooth: NDArray[np.int_]                 # (v,)
    smooth_rejections: NDArray[np.int_]        # (v,)

    # Rates and Clopper-Pearson intervals
    parametric_rate: NDArray[np.floating[Any]]  # (v,)
    smooth_rate: NDArray[np.floating[Any]]      # (v,)
    parametric_ci: NDArray[np.floating[Any]]    # (v, 2)
    smooth_ci: NDArray[np.floating[Any]]        # (v, 2)
