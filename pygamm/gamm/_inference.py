"""
Inference for fitted GAMMs: covariance, effective degrees of freedom
and term-level tests.

Covariance. In the spherical parameterization γ = (β, u) the model is a
ridge-type regression on A = [X, ZΛ] with penalty P = diag(0_p, I_q),
so the Bayesian posterior covariance is

    V_γ = σ² (A'A + P)⁻¹

and the covariance of (β, b = Λu) is V = T V_γ T' with T = diag(I, Λ).
This never inverts Λ, so variance components estimated at zero are fine.

Effective degrees of freedom. F = (A'A + P)⁻¹ A'A; the edf of a term is
the trace of F over the term's coefficients. Traces of diagonal blocks
are invariant under the block-diagonal change of basis T, so the u-space
values are the b-space values.

Smooth tests. Wald statistic on the term's coefficients using a rank-r
pseudo-inverse of its covariance, r = round(edf), referred to an F(r,
df_residual) distribution (Wood 2006; mgcv's test before version 1.7).

References:
    Wood, S. N. (2006). On confidence intervals for generalized additive
    models based on penalized regression splines. Australian & New
    Zealand Journal of Statistics, 48(4), 445-464.
    Wood, S. N. (2017). Generalized Additive Models, Section 6.12.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pygamm.gamm._pls import CrossProducts


@dataclass(frozen=True)
class CoefficientCovariance:
    """Joint covariance of (β, b) and per-coefficient edf.

    Attributes:
        V: Bayesian covariance of (β, b), shape (p + q, p + q).
        edf: Diagonal of the influence matrix F in u-space (p + q,).
        p: Number of fixed effects; b starts at index p.
    """
    V: NDArray
    edf: NDArray
    p: int

    @property
    def edf_total(self) -> float:
        return float(np.sum(self.edf))


def coefficient_covariance(
    cp: CrossProducts,
    Lambda: NDArray,
    sigma_sq: float,
) -> CoefficientCovariance:
    """Bayesian covariance of all coefficients and their edf."""
    p, q = cp.p, cp.q
    XtZL = cp.XtZ @ Lambda
    AtA = np.block([
        [cp.XtX, XtZL],
        [XtZL.T, Lambda.T @ cp.ZtZ @ Lambda],
    ])
    H = AtA.copy()
    H[p:, p:] += np.eye(q)

    try:
        H_inv = np.linalg.inv(H)
    except np.linalg.LinAlgError:
        H_inv = np.linalg.pinv(H)
    H_inv = 0.5 * (H_inv + H_inv.T)

    T = np.eye(p + q)
    T[p:, p:] = Lambda
    V = sigma_sq * (T @ H_inv @ T.T)
    edf = np.einsum('ij,ji->i', H_inv, AtA)

    return CoefficientCovariance(V=V, edf=edf, p=p)


def parametric_tests(
    beta: NDArray,
    cov: CoefficientCovariance,
    df_residual: float,
) -> tuple[NDArray, NDArray, NDArray]:
    """Wald t-tests of the fixed effects.

    Returns:
        (se, t_values, p_values), each (p,).
    """
    p = beta.shape[0]
    se = np.sqrt(np.maximum(np.diag(cov.V)[:p], 0.0))
    with np.errstate(divide='ignore', invalid='ignore'):
        t_vals = np.where(se > 0, beta / se, 0.0)
    p_vals = 2.0 * stats.t.sf(np.abs(t_vals), df_residual)
    return se, t_vals, p_vals


def smooth_test(
    coef: NDArray,
    V: NDArray,
    edf: float,
    df_residual: float,
) -> tuple[float, float, float]:
    """Test H0: a smooth term is identically zero.

    Args:
        coef: The term's coefficients (fixed and random parts).
        V: Their joint covariance.
        edf: Effective degrees of freedom of the term.
        df_residual: Residual degrees of freedom.

    Returns:
        (F statistic, reference df r, p-value).
    """
    dim = coef.shape[0]
    r = int(min(max(round(edf), 1), dim))

    evals, evecs = np.linalg.eigh(0.5 * (V + V.T))
    order = np.argsort(evals)[::-1][:r]
    top_vals = evals[order]
    keep = top_vals > top_vals[0] * 1e-12 if top_vals[0] > 0 else np.zeros(r, dtype=bool)
    if not np.any(keep):
        return 0.0, float(r), 1.0

    z = evecs[:, order[keep]].T @ coef
    r = int(np.sum(keep))
    F = float(np.sum(z ** 2 / top_vals[keep])) / r
    p_value = float(stats.f.sf(F, r, df_residual))
    return F, float(r), p_value
