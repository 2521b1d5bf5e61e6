"""
Penalized Least Squares (PLS) solver on cross-products.

For fixed θ (and hence fixed Λ_θ), solves

    minimize ‖y - Xβ - ZΛu‖² + ‖u‖²

for the fixed effects β and the spherical random effects u = Λ⁻¹b.
σ² is profiled out from the penalized RSS.

The outer optimizer calls this once per deviance evaluation, and the
number of rows n is large (all measurements of all trajectories) while
p and q are small. So the data enter only through the cross-products
X'X, X'Z, Z'Z, X'y, Z'y and y'y, computed once per fit; every solve
then costs O((p + q)³) regardless of n.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48. Section 2.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla

from pygamm.core.exceptions import SingularMatrixError


@dataclass(frozen=True)
class CrossProducts:
    """Sufficient statistics of the (pre-whitened) model matrices."""
    XtX: NDArray        # (p, p)
    XtZ: NDArray        # (p, q)
    ZtZ: NDArray        # (q, q)
    Xty: NDArray        # (p,)
    Zty: NDArray        # (q,)
    yty: float
    n: int

    @property
    def p(self) -> int:
        return self.XtX.shape[0]

    @property
    def q(self) -> int:
        return self.ZtZ.shape[0]

    @classmethod
    def from_arrays(cls, X: NDArray, Z: NDArray, y: NDArray) -> CrossProducts:
        return cls(
            XtX=X.T @ X,
            XtZ=X.T @ Z,
            ZtZ=Z.T @ Z,
            Xty=X.T @ y,
            Zty=Z.T @ y,
            yty=float(y @ y),
            n=X.shape[0],
        )


@dataclass(frozen=True)
class PLSResult:
    """Result from a penalized least squares solve.

    Attributes:
        beta: Fixed effects estimates (p,).
        u: Spherical random effects (q,).
        b: Conditional modes b = Λu (q,).
        sigma_sq: Profiled residual variance.
        pwrss: Penalized residual sum of squares ‖y - Xβ - Zb‖² + ‖u‖².
        L: Cholesky factor of (Λ'Z'ZΛ + I), lower triangular (q, q).
        RX: Cholesky factor of the Schur complement
            X'X - X'ZΛ (Λ'Z'ZΛ + I)⁻¹ Λ'Z'X, lower triangular (p, p).
    """
    beta: NDArray
    u: NDArray
    b: NDArray
    sigma_sq: float
    pwrss: float
    L: NDArray
    RX: NDArray


def solve_pls(
    cp: CrossProducts,
    Lambda: NDArray,
    reml: bool = True,
) -> PLSResult:
    """Solve the penalized least squares problem.

    The normal equations of the penalized system are

        [Λ'Z'ZΛ + I   Λ'Z'X] [u]   [Λ'Z'y]
        [X'ZΛ         X'X  ] [β] = [X'y  ]

    solved by eliminating u through L = chol(Λ'Z'ZΛ + I). At the optimum
    the penalized RSS equals y'y - β'X'y - u'Λ'Z'y.

    Args:
        cp: Cross-products of X, Z and y.
        Lambda: Relative covariance factor (q, q).
        reml: If True, σ² = pwrss / (n - p); else pwrss / n.

    Returns:
        PLSResult with all estimates.

    Raises:
        SingularMatrixError: If the fixed effects design is rank-deficient.
    """
    n, p, q = cp.n, cp.p, cp.q

    if q == 0:
        L = np.zeros((0, 0), dtype=np.float64)
        u = np.zeros(0, dtype=np.float64)
        RtR = cp.XtX
        rhs_beta = cp.Xty
    else:
        ZLam_t_Z_Lam = Lambda.T @ cp.ZtZ @ Lambda
        L = np.linalg.cholesky(ZLam_t_Z_Lam + np.eye(q))

        ZLam_t_y = Lambda.T @ cp.Zty           # (q,)
        ZLam_t_X = Lambda.T @ cp.XtZ.T         # (q, p)

        cu = sla.solve_triangular(L, ZLam_t_y, lower=True)
        CX = sla.solve_triangular(L, ZLam_t_X, lower=True)

        RtR = cp.XtX - CX.T @ CX
        rhs_beta = cp.Xty - CX.T @ cu

    try:
        RX = np.linalg.cholesky(RtR)
    except np.linalg.LinAlgError as e:
        raise SingularMatrixError(
            "fixed effects design is rank-deficient given the random effects",
            matrix_name="X'V⁻¹X",
            expected_rank=p,
        ) from e

    tmp = sla.solve_triangular(RX, rhs_beta, lower=True)
    beta = sla.solve_triangular(RX.T, tmp, lower=False)

    if q > 0:
        resid_rhs = ZLam_t_y - ZLam_t_X @ beta
        cu_final = sla.solve_triangular(L, resid_rhs, lower=True)
        u = sla.solve_triangular(L.T, cu_final, lower=False)
        b = Lambda @ u
        pwrss = cp.yty - float(beta @ cp.Xty) - float(u @ ZLam_t_y)
    else:
        b = u
        pwrss = cp.yty - float(beta @ cp.Xty)

    # Cancellation can push an essentially perfect fit below zero
    pwrss = max(pwrss, 1e-300)

    sigma_sq = pwrss / (n - p) if reml else pwrss / n

    return PLSResult(
        beta=beta,
        u=u,
        b=b,
        sigma_sq=sigma_sq,
        pwrss=pwrss,
        L=L,
        RX=RX,
    )
