"""
Profiled deviance for the GAMM variance parameters.

β and σ² are profiled out analytically, leaving a function of θ only,
which the outer optimizer minimizes. Smoothing parameters are part of θ
(as relative variances of the penalized basis coefficients), so this
is also the REML/ML criterion for smoothness selection.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), Sections 2-3.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pygamm.gamm._random_effects import RandomBlock, build_lambda
from pygamm.gamm._pls import CrossProducts, PLSResult, solve_pls


def log_det_factor(F: NDArray) -> float:
    """log|F F'| = 2 Σ log|diag(F)| for a triangular factor F."""
    if F.size == 0:
        return 0.0
    return 2.0 * float(np.sum(np.log(np.maximum(np.abs(np.diag(F)), 1e-20))))


def deviance_from_pls(pls: PLSResult, n: int, p: int, reml: bool) -> float:
    """Profiled deviance at a PLS solution.

    ML:   d(θ) = log|L_θ|² + n × [1 + log(2π × pwrss/n)]
    REML: d(θ) = log|L_θ|² + log|RX|² + (n-p) × [1 + log(2π × pwrss/(n-p))]
    """
    log_det_L = log_det_factor(pls.L)
    if reml:
        df = n - p
        return (log_det_L
                + log_det_factor(pls.RX)
                + df * (1.0 + np.log(2.0 * np.pi * pls.pwrss / df)))
    return log_det_L + n * (1.0 + np.log(2.0 * np.pi * pls.pwrss / n))


def profiled_deviance(
    theta: NDArray,
    cp: CrossProducts,
    blocks: list[RandomBlock],
    reml: bool = True,
) -> float:
    """Compute the profiled REML (or ML) deviance for given θ.

    Args:
        theta: Parameter vector for Λ_θ.
        cp: Cross-products of the (pre-whitened) model matrices.
        blocks: Random blocks in Z column order.
        reml: If True, REML deviance; if False, ML deviance.

    Returns:
        Profiled deviance value (scalar to minimize).
    """
    Lambda = build_lambda(theta, blocks)
    pls = solve_pls(cp, Lambda, reml=reml)
    return float(deviance_from_pls(pls, cp.n, cp.p, reml))
