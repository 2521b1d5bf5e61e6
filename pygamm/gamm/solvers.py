"""
Fitting entry point for generalized additive mixed models.

Public API:
    gamm() — fit a Gaussian GAMM by REML or ML, optionally with AR1 errors
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
from scipy.optimize import minimize

from pygamm.core.exceptions import ValidationError
from pygamm.core.result import Result
from pygamm.core.timing import Timer
from pygamm.core.validation import check_correlation
from pygamm.data.trajectories import TrajectoryData, mark_trajectory_starts
from pygamm.gamm._ar1 import ar1_log_jacobian, ar1_transform, estimate_rho
from pygamm.gamm._common import (
    ROLE_INTERCEPT, ROLE_MAIN_EFFECT, GAMMParams, TermTest, VarCompSummary,
)
from pygamm.gamm._deviance import deviance_from_pls, profiled_deviance
from pygamm.gamm._inference import (
    coefficient_covariance, parametric_tests, smooth_test,
)
from pygamm.gamm._pls import CrossProducts, solve_pls
from pygamm.gamm._random_effects import (
    KIND_UNSTRUCTURED, RandomBlock, block_covariances, build_lambda,
    build_z_matrix, slope_start_variants, theta_lower_bounds, theta_start,
)
from pygamm.gamm.design import GAMMDesign
from pygamm.gamm.solution import GAMMSolution
from pygamm.gamm.terms import ModelSpec

_METHODS = ('REML', 'ML')


def gamm(
    data: pd.DataFrame | TrajectoryData,
    spec: ModelSpec,
    *,
    method: str = 'REML',
    rho: float | str | None = None,
    tol: float = 1e-8,
    max_iter: int = 200,
) -> GAMMSolution:
    """Fit a Gaussian generalized additive mixed model.

    Smooths are fitted through their mixed-model representation, so
    smoothing parameters and random effect variances are estimated
    together by minimizing the profiled REML (or ML) deviance
    (Bates et al. 2015) with L-BFGS-B.

    Args:
        data: DataFrame with every column the formula refers to, or a
            TrajectoryData pool.
        spec: Model formula.
        method: 'REML' (default) or 'ML'. Use ML for likelihood ratio
            comparisons of models with different fixed effects.
        rho: AR1 correlation of the residuals within trajectories.
            None fits independent errors; a float in (-1, 1) fixes ρ;
            'auto' fits the model without AR1 first and uses the lag-1
            autocorrelation of its residuals. Trajectory boundaries come
            from the ``spec.start`` column, or, for TrajectoryData without
            that column, from the subject/trajectory columns.
        tol: Convergence tolerance for the optimizer.
        max_iter: Maximum optimizer iterations.

    Returns:
        GAMMSolution with parametric and smooth term tests, variance
        components, fit statistics and an mgcv-style summary().

    Examples:
        >>> spec = ModelSpec('y', parametric=(Parametric('group'),),
        ...                  smooths=(Smooth('time'), Smooth('time', by='group')),
        ...                  random=(RandomSmooth('time', 'subject'),))
        >>> fit = gamm(sample, spec, rho=0.6)
        >>> fit.smooth_table
    """
    if method not in _METHODS:
        raise ValueError(f"method must be one of {_METHODS}, got {method!r}")

    frame, start = _resolve_frame(data, spec, rho)

    if isinstance(rho, str):
        if rho != 'auto':
            raise ValueError(f"rho must be a float, None or 'auto', got {rho!r}")
        # itsadug::start_value_rho approach: residual ACF at lag 1
        base = gamm(frame, spec, method=method, rho=None, tol=tol, max_iter=max_iter)
        rho_hat = estimate_rho(base.residuals, start)
        return _fit(frame, spec, start, method, rho_hat, tol, max_iter,
                    rho_estimated=True)

    if rho is not None:
        check_correlation(float(rho), "rho")
        rho = float(rho)
    return _fit(frame, spec, start, method, rho, tol, max_iter)


def _resolve_frame(
    data: pd.DataFrame | TrajectoryData,
    spec: ModelSpec,
    rho,
) -> tuple[pd.DataFrame, np.ndarray | None]:
    """Extract the DataFrame and, when AR1 is requested, the start flags."""
    if isinstance(data, TrajectoryData):
        frame = data.frame
        if rho is None:
            return frame, None
        if spec.start in frame.columns:
            return frame, frame[spec.start].to_numpy(dtype=bool)
        return frame, mark_trajectory_starts(frame, data.subject, data.trajectory)

    if not isinstance(data, pd.DataFrame):
        raise ValidationError(
            f"data: expected DataFrame or TrajectoryData, got {type(data).__name__}"
        )
    if rho is None:
        return data, None
    if spec.start not in data.columns:
        raise ValidationError(
            f"AR1 errors need a trajectory start column '{spec.start}' in data"
        )
    return data, data[spec.start].to_numpy(dtype=bool)


def _fit(
    frame: pd.DataFrame,
    spec: ModelSpec,
    start: np.ndarray | None,
    method: str,
    rho: float | None,
    tol: float,
    max_iter: int,
    rho_estimated: bool = False,
) -> GAMMSolution:
    timer = Timer()
    timer.start()
    reml = method == 'REML'

    with timer.section('setup'):
        design = GAMMDesign.from_dataframe(frame, spec, start=start)
        blocks = list(design.blocks)
        y, X = design.y, design.X
        Z = build_z_matrix(blocks, design.n)
        if rho is not None:
            y = ar1_transform(y, design.start, rho)
            X = ar1_transform(X, design.start, rho)
            Z = ar1_transform(Z, design.start, rho)
        cp = CrossProducts.from_arrays(X, Z, y)

        theta0 = theta_start(blocks)
        lb = theta_lower_bounds(blocks)
        bounds = [(lb[i], None) for i in range(len(theta0))]

    with timer.section('optimization'):
        if len(theta0) == 0:
            theta_hat = theta0
            converged, n_iter, message = True, 0, 'no variance parameters'
        else:
            starts = [theta0]
            if any(b.kind == KIND_UNSTRUCTURED and b.n_terms > 1 for b in blocks):
                starts.extend(slope_start_variants(theta0, blocks))

            best = None
            for start_theta in starts:
                res = minimize(
                    profiled_deviance,
                    start_theta,
                    args=(cp, blocks, reml),
                    method='L-BFGS-B',
                    bounds=bounds,
                    options={'maxiter': max_iter, 'ftol': tol, 'gtol': tol * 10},
                )
                if best is None or res.fun < best.fun:
                    best = res
            theta_hat = best.x
            converged, n_iter, message = bool(best.success), int(best.nit), str(best.message)

    if not converged:
        warnings.warn(
            f"GAMM optimizer did not converge after {n_iter} iterations. "
            f"Message: {message}",
            RuntimeWarning,
            stacklevel=3,
        )

    with timer.section('final_solve'):
        Lambda = build_lambda(theta_hat, blocks)
        pls = solve_pls(cp, Lambda, reml=reml)
        fitted = design.X @ pls.beta + build_z_matrix(blocks, design.n) @ pls.b
        residuals = design.y - fitted

    with timer.section('inference'):
        cov = coefficient_covariance(cp, Lambda, pls.sigma_sq)
        edf_total = cov.edf_total
        df_residual = max(design.n - edf_total, 1.0)
        se, t_vals, p_vals = parametric_tests(pls.beta, cov, df_residual)
        terms = _term_tests(design, pls, cov, t_vals, p_vals, df_residual)

    with timer.section('model_fit'):
        dev = deviance_from_pls(pls, design.n, design.p, reml)
        ll = -0.5 * float(dev)
        if rho is not None:
            ll += ar1_log_jacobian(design.start, rho)
        n_params = design.p + len(theta_hat) + 1
        aic = -2.0 * ll + 2.0 * n_params
        bic = -2.0 * ll + np.log(design.n) * n_params
        var_comps = _extract_var_components(theta_hat, pls.sigma_sq, blocks)

    timer.stop()

    params = GAMMParams(
        coefficients=pls.beta,
        coefficient_names=design.coefficient_names,
        se=se,
        t_values=t_vals,
        p_values=p_vals,
        terms=terms,
        var_components=tuple(var_comps),
        residual_variance=pls.sigma_sq,
        rho=rho,
        edf=edf_total,
        df_residual=df_residual,
        log_likelihood=ll,
        reml=reml,
        aic=float(aic),
        bic=float(bic),
        n_obs=design.n,
        n_groups=dict(design.n_groups),
        converged=converged,
        n_iter=n_iter,
        fitted_values=fitted,
        residuals=residuals,
        theta=theta_hat,
    )

    warn_list = []
    if not converged:
        warn_list.append(f"Optimizer did not converge: {message}")

    result = Result(
        params=params,
        info={
            'method': method,
            'optimizer': 'L-BFGS-B',
            'converged': converged,
            'n_iter': n_iter,
            'deviance': float(dev),
            'formula': spec.formula(),
            'rho': rho,
            'rho_estimated': rho_estimated,
        },
        timing=timer.result(),
        backend_name='cpu_gamm',
        warnings=tuple(warn_list),
    )
    return GAMMSolution(_result=result)


# =====================================================================
# Helpers
# =====================================================================

def _term_tests(design, pls, cov, t_vals, p_vals, df_residual) -> tuple[TermTest, ...]:
    """One TermTest per parametric coefficient and per smooth term."""
    tests = []
    block_offsets = np.cumsum([0] + [b.q for b in design.blocks])

    for layout in design.layouts:
        if layout.role in (ROLE_INTERCEPT, ROLE_MAIN_EFFECT):
            (j,) = layout.fixed_columns
            tests.append(TermTest(
                label=layout.label,
                role=layout.role,
                variable=layout.variable,
                by=layout.by,
                level=layout.level,
                estimate=float(pls.beta[j]),
                statistic=float(t_vals[j]),
                df=1.0,
                edf=1.0,
                p_value=float(p_vals[j]),
            ))
            continue

        idx = list(layout.fixed_columns)
        if layout.block is not None:
            lo, hi = block_offsets[layout.block], block_offsets[layout.block + 1]
            idx.extend(range(cov.p + lo, cov.p + hi))
        idx = np.asarray(idx, dtype=np.intp)

        coef = np.concatenate([pls.beta, pls.b])[idx]
        V = cov.V[np.ix_(idx, idx)]
        edf = float(np.sum(cov.edf[idx]))
        F, ref_df, p_value = smooth_test(coef, V, edf, df_residual)
        tests.append(TermTest(
            label=layout.label,
            role=layout.role,
            variable=layout.variable,
            by=layout.by,
            level=layout.level,
            estimate=None,
            statistic=F,
            df=ref_df,
            edf=edf,
            p_value=p_value,
        ))
    return tuple(tests)


def _extract_var_components(
    theta: np.ndarray,
    sigma_sq: float,
    blocks: list[RandomBlock],
) -> list[VarCompSummary]:
    """Variance component summaries from θ and σ².

    For smooth blocks the variance is σ²/λ, the inverse smoothing
    parameter on the scale of the reparameterized basis.
    """
    var_comps = []
    for block, cov_matrix in zip(blocks, block_covariances(theta, sigma_sq, blocks)):
        for i, name in enumerate(block.components):
            var_i = cov_matrix[i, i]
            sd_i = np.sqrt(max(var_i, 0.0))
            corr = None
            if (block.kind == KIND_UNSTRUCTURED and i > 0
                    and cov_matrix[0, 0] > 0 and var_i > 0):
                corr = float(np.clip(
                    cov_matrix[i, 0] / (np.sqrt(cov_matrix[0, 0]) * sd_i), -1.0, 1.0
                ))
            var_comps.append(VarCompSummary(
                group=block.label,
                name=name,
                variance=float(var_i),
                std_dev=float(sd_i),
                corr=corr,
            ))
    return var_comps
