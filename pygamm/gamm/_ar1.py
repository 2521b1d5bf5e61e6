"""
First-order autoregressive residuals within trajectories.

With AR1 errors of known correlation ρ, the rows of the model can be
pre-whitened so that the transformed errors are independent (this is
how mgcv::bam handles ``rho`` and ``AR.start``):

    r*_i = r_i                                   if row i starts a trajectory
    r*_i = (r_i - ρ r_{i-1}) / sqrt(1 - ρ²)      otherwise

The transform has a constant Jacobian that enters the log-likelihood
but not the optimization over the variance parameters.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pygamm.core.exceptions import ValidationError
from pygamm.core.validation import check_1d, check_array


def ar1_transform(M: NDArray, start: NDArray, rho: float) -> NDArray:
    """Pre-whiten the rows of a vector or matrix.

    Args:
        M: Array with rows as observations, shape (n,) or (n, k).
        start: Boolean (n,) flags, True on the first row of each trajectory.
        rho: AR1 coefficient in (-1, 1).

    Returns:
        Transformed copy of M.
    """
    M = np.asarray(M, dtype=np.float64)
    start = np.asarray(start, dtype=bool)
    if start.shape[0] != M.shape[0]:
        raise ValidationError(
            f"start has {start.shape[0]} elements, expected {M.shape[0]}"
        )
    if M.shape[0] and not start[0]:
        raise ValidationError("the first row must start a trajectory")

    out = M.copy()
    if rho == 0.0:
        return out
    idx = np.flatnonzero(~start)
    scale = 1.0 / np.sqrt(1.0 - rho ** 2)
    out[idx] = (M[idx] - rho * M[idx - 1]) * scale
    return out


def ar1_log_jacobian(start: NDArray, rho: float) -> float:
    """log |det W| of the whitening transform W."""
    n_linked = int(np.sum(~np.asarray(start, dtype=bool)))
    return -0.5 * n_linked * float(np.log1p(-rho ** 2))


def estimate_rho(residuals: NDArray, start: NDArray) -> float:
    """Lag-1 autocorrelation of residuals within trajectories.

    Pairs that straddle a trajectory boundary are excluded. The estimate
    is clipped to [-0.99, 0.99] so it can be used as a fixed ρ.

    Args:
        residuals: Residuals of a model fitted without AR1 (n,).
        start: Trajectory start flags (n,).

    Returns:
        Estimated ρ.
    """
    r = check_array(residuals, "residuals")
    check_1d(r, "residuals")
    start = np.asarray(start, dtype=bool)
    r = r - r.mean()
    denom = float(r @ r)
    if denom == 0.0:
        return 0.0
    idx = np.flatnonzero(~start)
    idx = idx[idx > 0]
    rho = float(np.sum(r[idx] * r[idx - 1])) / denom
    return float(np.clip(rho, -0.99, 0.99))
