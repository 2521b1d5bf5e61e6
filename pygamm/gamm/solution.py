"""
Solution wrapper for generalized additive mixed models.

GAMMSolution wraps Result[GAMMParams] and provides mgcv-style summary
output, term tables as DataFrames, the structured term mapping used by
the simulation extractor, and model comparison via likelihood ratio
tests.
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats

from pygamm.core.result import Result
from pygamm.gamm._common import (
    ROLE_DIFFERENCE_SMOOTH, ROLE_SMOOTH, GAMMParams, TermTest, VarCompSummary,
)


def _significance_stars(p: float) -> str:
    """Return significance stars like R."""
    if p < 0.001:
        return '***'
    elif p < 0.01:
        return '**'
    elif p < 0.05:
        return '*'
    elif p < 0.1:
        return '.'
    else:
        return ' '


def _format_pvalue(p: float) -> str:
    """Format p-value like R."""
    if p < 2e-16:
        return '< 2e-16'
    elif p < 0.001:
        return f'{p:.2e}'
    else:
        return f'{p:.4f}'


class GAMMSolution:
    """Solution wrapper for a fitted GAMM.

    Provides summary output matching the layout of mgcv's
    summary(gam(...)), parametric and smooth term tables, variance
    components and likelihood ratio comparison.
    """

    def __init__(self, _result: Result[GAMMParams]):
        self._result = _result

    @property
    def params(self) -> GAMMParams:
        return self._result.params

    @property
    def info(self) -> dict:
        return self._result.info

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    # --- Parametric terms ---

    @property
    def coefficients(self) -> NDArray:
        """Parametric coefficient estimates β̂."""
        return self.params.coefficients

    @property
    def fixef(self) -> dict[str, float]:
        """Fixed effects as name → value dict."""
        return dict(zip(self.params.coefficient_names, self.params.coefficients))

    @property
    def se(self) -> NDArray:
        return self.params.se

    @property
    def p_values(self) -> NDArray:
        return self.params.p_values

    @property
    def parametric_table(self) -> pd.DataFrame:
        """Wald t-tests of the intercept and parametric terms."""
        rows = [t for t in self.params.terms if t.estimate is not None]
        index = [t.label for t in rows]
        names = list(self.params.coefficient_names)
        pos = [names.index(label) for label in index]
        return pd.DataFrame(
            {
                'estimate': [t.estimate for t in rows],
                'std_error': self.params.se[pos],
                't_value': [t.statistic for t in rows],
                'p_value': [t.p_value for t in rows],
            },
            index=pd.Index(index, name='term'),
        )

    # --- Smooth terms ---

    @property
    def smooth_table(self) -> pd.DataFrame:
        """Approximate significance of the smooth terms."""
        rows = [t for t in self.params.terms
                if t.role in (ROLE_SMOOTH, ROLE_DIFFERENCE_SMOOTH)]
        return pd.DataFrame(
            {
                'edf': [t.edf for t in rows],
                'ref_df': [t.df for t in rows],
                'F': [t.statistic for t in rows],
                'p_value': [t.p_value for t in rows],
            },
            index=pd.Index([t.label for t in rows], name='term'),
        )

    @property
    def terms(self) -> dict[str, TermTest]:
        """Every tested term by generated label, in model order."""
        return {t.label: t for t in self.params.terms}

    def term(self, label: str) -> TermTest:
        try:
            return self.terms[label]
        except KeyError:
            raise KeyError(
                f"no term {label!r}; available: {list(self.terms)}"
            ) from None

    # --- Variance structure ---

    @property
    def var_components(self) -> tuple[VarCompSummary, ...]:
        return self.params.var_components

    @property
    def residual_variance(self) -> float:
        return self.params.residual_variance

    @property
    def rho(self) -> float | None:
        """AR1 coefficient used for the fit, None without AR1."""
        return self.params.rho

    # --- Model fit ---

    @property
    def edf(self) -> float:
        return self.params.edf

    @property
    def df_residual(self) -> float:
        return self.params.df_residual

    @property
    def log_likelihood(self) -> float:
        return self.params.log_likelihood

    @property
    def aic(self) -> float:
        return self.params.aic

    @property
    def bic(self) -> float:
        return self.params.bic

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    @property
    def converged(self) -> bool:
        return self.params.converged

    # --- Model comparison ---

    def compare(self, other: 'GAMMSolution') -> str:
        """Likelihood ratio test between two nested models.

        Both models should be fit with method='ML' for a valid LRT when
        their parametric or smooth terms differ.

        Args:
            other: The other model to compare against.

        Returns:
            Formatted LRT summary string.
        """
        if self.params.reml or other.params.reml:
            warnings.warn(
                "Likelihood ratio test requires ML (not REML) fits for "
                "valid comparison. Refit with method='ML'.",
                UserWarning,
                stacklevel=2,
            )

        n_params_self = len(self.params.theta) + len(self.params.coefficients)
        n_params_other = len(other.params.theta) + len(other.params.coefficients)

        if n_params_self >= n_params_other:
            full, reduced = self, other
            n_full, n_reduced = n_params_self, n_params_other
        else:
            full, reduced = other, self
            n_full, n_reduced = n_params_other, n_params_self

        chi_sq = max(-2.0 * (reduced.log_likelihood - full.log_likelihood), 0.0)
        df = max(n_full - n_reduced, 1)
        p_value = float(stats.chi2.sf(chi_sq, df))

        lines = [
            "Likelihood Ratio Test",
            "=" * 50,
            f"  Reduced model logLik: {reduced.log_likelihood:.4f}  "
            f"(df = {n_reduced})",
            f"  Full model logLik:    {full.log_likelihood:.4f}  "
            f"(df = {n_full})",
            f"  Chi-squared: {chi_sq:.4f}  on {df} df",
            f"  p-value: {_format_pvalue(p_value)}",
        ]
        return '\n'.join(lines)

    # --- Summary ---

    def summary(self) -> str:
        """R-style summary in the layout of mgcv::summary.gam()."""
        params = self.params
        method = 'REML' if params.reml else 'ML'

        lines = []
        lines.append("Family: gaussian")
        lines.append("Link function: identity")
        lines.append("")
        lines.append("Formula:")
        lines.append(self.info.get('formula', ''))
        if params.rho is not None:
            how = 'estimated' if self.info.get('rho_estimated') else 'fixed'
            lines.append(f"AR1 residuals: rho = {params.rho:.4f} ({how})")
        lines.append("")

        lines.append("Parametric coefficients:")
        lines.append(f" {'':>15s} {'Estimate':>10s} {'Std. Error':>10s} "
                     f"{'t value':>10s} {'Pr(>|t|)':>10s} {'':>4s}")
        table = self.parametric_table
        for name, row in table.iterrows():
            lines.append(
                f" {name:>15s} {row['estimate']:10.4f} {row['std_error']:10.4f} "
                f"{row['t_value']:10.3f} {_format_pvalue(row['p_value']):>10s} "
                f"{_significance_stars(row['p_value'])}"
            )
        lines.append("---")
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        lines.append("")

        smooths = self.smooth_table
        if len(smooths):
            lines.append("Approximate significance of smooth terms:")
            lines.append(f" {'':>20s} {'edf':>8s} {'Ref.df':>8s} "
                         f"{'F':>10s} {'p-value':>10s} {'':>4s}")
            for name, row in smooths.iterrows():
                lines.append(
                    f" {name:>20s} {row['edf']:8.3f} {row['ref_df']:8.0f} "
                    f"{row['F']:10.3f} {_format_pvalue(row['p_value']):>10s} "
                    f"{_significance_stars(row['p_value'])}"
                )
            lines.append("")

        if params.var_components:
            lines.append("Random effects:")
            lines.append(f" {'Groups':<20s} {'Name':<15s} {'Variance':>10s} "
                         f"{'Std.Dev.':>10s} {'Corr':>6s}")
            prev_group = None
            for vc in params.var_components:
                grp_label = vc.group if vc.group != prev_group else ''
                corr_str = f'{vc.corr:6.2f}' if vc.corr is not None else ''
                lines.append(
                    f" {grp_label:<20s} {vc.name:<15s} {vc.variance:10.4f} "
                    f"{vc.std_dev:10.4f} {corr_str}"
                )
                prev_group = vc.group
            lines.append(
                f" {'Residual':<20s} {'':<15s} {params.residual_variance:10.4f} "
                f"{np.sqrt(params.residual_variance):10.4f}"
            )
            lines.append("")

        group_parts = ', '.join(
            f'{name}: {n}' for name, n in params.n_groups.items()
        )
        obs_line = f"Number of obs: {params.n_obs}"
        if group_parts:
            obs_line += f", groups: {group_parts}"
        lines.append(obs_line)
        lines.append(f"Total edf: {params.edf:.2f}, residual df: "
                     f"{params.df_residual:.1f}")
        lines.append(f"{method} criterion: {-2 * params.log_likelihood:.1f}  "
                     f"AIC: {params.aic:.1f}, BIC: {params.bic:.1f}")

        if not params.converged:
            lines.append("")
            lines.append("WARNING: Model did not converge")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        method = 'REML' if self.params.reml else 'ML'
        n_smooth = len(self.smooth_table)
        return (
            f"GAMMSolution({method}, "
            f"n={self.params.n_obs}, "
            f"parametric={len(self.params.coefficient_names)}, "
            f"smooth={n_smooth}, "
            f"edf={self.params.edf:.2f})"
        )
