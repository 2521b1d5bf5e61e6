"""
Penalized spline bases and their mixed-model representation.

A smooth f(x) = B(x) c with penalty λ c'Sc is equivalent to a mixed
model: decompose S = U diag(s) U', then

    B c = B U₀ β + B U₊ diag(s₊)^(-1/2) b,     b ~ N(0, σ²/λ I)

where U₀ spans the null space of S (unpenalized, fixed effects) and U₊
the range space (penalized, i.i.d. random effects). The smoothing
parameter becomes a variance component, so the REML machinery of the
mixed model estimates it.

Bases are cubic B-splines on equally spaced knots with a difference
penalty of order m (Eilers & Marx P-splines): m = 2 leaves the linear
trend unpenalized, m = 1 only the constant.

References:
    Eilers, P. H. C., & Marx, B. D. (1996). Flexible smoothing with
    B-splines and penalties. Statistical Science, 11(2), 89-121.
    Wood, S. N. (2017). Generalized Additive Models, Sections 5.8, 6.6.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import BSpline

from pygamm.core.exceptions import ValidationError

_DEGREE = 3


def bspline_knots(lower: float, upper: float, k: int) -> NDArray:
    """Equally spaced knot vector for k cubic B-spline basis functions.

    The k - 2 inner knots span exactly [lower, upper]; three more knots
    on each side complete the basis.
    """
    inner = np.linspace(lower, upper, k - _DEGREE + 1)
    dx = inner[1] - inner[0]
    left = lower - dx * np.arange(_DEGREE, 0, -1)
    right = upper + dx * np.arange(1, _DEGREE + 1)
    return np.concatenate([left, inner, right])


def bspline_basis(x: NDArray, k: int) -> NDArray:
    """Evaluate k cubic B-spline basis functions at x.

    Args:
        x: Covariate values (n,).
        k: Number of basis functions, >= 4.

    Returns:
        Dense basis matrix (n, k); rows sum to one.

    Raises:
        ValidationError: If x is constant (no spread to smooth over).
    """
    x = np.asarray(x, dtype=np.float64)
    lower, upper = float(np.min(x)), float(np.max(x))
    if not upper > lower:
        raise ValidationError(
            f"cannot build a smooth over a constant covariate (value {lower})"
        )
    knots = bspline_knots(lower, upper, k)
    basis = BSpline.design_matrix(np.clip(x, lower, upper), knots, _DEGREE)
    return basis.toarray()


def difference_penalty(k: int, order: int) -> NDArray:
    """Penalty matrix D'D with D the order-th difference operator (k, k)."""
    D = np.diff(np.eye(k), n=order, axis=0)
    return D.T @ D


def absorb_sum_to_zero(B: NDArray, S: NDArray) -> tuple[NDArray, NDArray]:
    """Reparameterize a basis so that the smooth sums to zero over the data.

    The constraint C c = 0 with C = 1'B is absorbed by the null space
    of C from a complete QR decomposition of C' (as mgcv does), which
    removes one column.

    Returns:
        (B Zc, Zc' S Zc): constrained basis (n, k-1) and penalty (k-1, k-1).
    """
    C = B.sum(axis=0).reshape(-1, 1)
    Q, _ = np.linalg.qr(C, mode='complete')
    Zc = Q[:, 1:]
    return B @ Zc, Zc.T @ S @ Zc


def mixed_representation(
    B: NDArray,
    S: NDArray,
    tol: float = 1e-9,
) -> tuple[NDArray, NDArray]:
    """Split a penalized basis into fixed and random parts.

    Args:
        B: Basis matrix (n, k).
        S: Penalty matrix (k, k), symmetric positive semi-definite.
        tol: Relative threshold below which eigenvalues count as zero.

    Returns:
        (X_fixed, Z_random): unpenalized columns (n, k₀) and penalized
        columns scaled to unit penalty (n, k - k₀).
    """
    evals, evecs = np.linalg.eigh(S)
    penalized = evals > tol * max(float(evals.max()), 1.0)
    X_fixed = B @ evecs[:, ~penalized]
    Z_random = B @ evecs[:, penalized] / np.sqrt(evals[penalized])
    return X_fixed, Z_random
