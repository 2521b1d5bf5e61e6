"""
Solution wrapper for simulation results.

SimulationSolution wraps Result[SimulationParams] and provides the rate
table, its confidence intervals, outcome counts, the long-format table
of every fit and a printable summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
import pandas as pd

from pygamm.core.result import Result
from pygamm.montecarlo._ci import covers
from pygamm.montecarlo._common import FitResult, SimulationParams

if TYPE_CHECKING:
    from pygamm.montecarlo.design import SimulationDesign


@dataclass
class SimulationSolution:
    """
    User-facing simulation results.

    ``rates`` is the headline table: one row per model variant, the
    proportion of iterations in which the parametric group term and the
    difference smooth were significant at ``alpha``.
    """
    _result: Result[SimulationParams]
    _design: 'SimulationDesign'

    @property
    def params(self) -> SimulationParams:
        return self._result.params

    # --- Rates ---

    @property
    def rates(self) -> pd.DataFrame:
        """Rejection rates, columns 'parametric' and 'smooth'."""
        p = self.params
        return pd.DataFrame(
            {'parametric': p.parametric_rate, 'smooth': p.smooth_rate},
            index=pd.Index(p.variant_names, name='variant'),
        )

    @property
    def intervals(self) -> pd.DataFrame:
        """Clopper-Pearson bounds of both rates."""
        p = self.params
        return pd.DataFrame(
            {
                'parametric_lower': p.parametric_ci[:, 0],
                'parametric_upper': p.parametric_ci[:, 1],
                'smooth_lower': p.smooth_ci[:, 0],
                'smooth_upper': p.smooth_ci[:, 1],
            },
            index=pd.Index(p.variant_names, name='variant'),
        )

    @property
    def counts(self) -> pd.DataFrame:
        """Fit outcomes and the numerators/denominators of the rates."""
        p = self.params
        return pd.DataFrame(
            {
                'ok': p.n_ok,
                'failed': p.n_failed,
                'missing': p.n_missing,
                'parametric_n': p.n_parametric,
                'parametric_rejections': p.parametric_rejections,
                'smooth_n': p.n_smooth,
                'smooth_rejections': p.smooth_rejections,
            },
            index=pd.Index(p.variant_names, name='variant'),
        )

    @property
    def results(self) -> tuple[FitResult, ...]:
        """Every FitResult, ordered by iteration then variant."""
        return self.params.fits

    def to_frame(self) -> pd.DataFrame:
        """
        One row per fit.

        p-value columns hold the smallest p-value of the label's terms of
        that kind (NaN when absent); ``n_parametric``/``n_smooth`` give
        how many terms it was taken over.
        """
        fits = self.params.fits
        rows = []
        for f in fits:
            rows.append({
                'iteration': f.iteration,
                'variant': f.variant,
                'status': f.status,
                'parametric_p': min(f.parametric_p) if f.parametric_p else np.nan,
                'smooth_p': min(f.smooth_p) if f.smooth_p else np.nan,
                'n_parametric': len(f.parametric_p),
                'n_smooth': len(f.smooth_p),
                'converged': f.converged,
                'attempts': f.attempts,
                'n_warnings': len(f.warnings),
                'elapsed': f.elapsed,
            })
        columns = ['iteration', 'variant', 'status', 'parametric_p', 'smooth_p',
                   'n_parametric', 'n_smooth', 'converged', 'attempts',
                   'n_warnings', 'error', 'elapsed']
        frame = pd.DataFrame(rows, columns=[c for c in columns if c != 'error'])
        frame.insert(columns.index('error'), 'error',
                     pd.Series([f.error for f in fits], index=frame.index, dtype=object))
        return frame

    # --- Metadata ---

    @property
    def alpha(self) -> float:
        return self.params.alpha

    @property
    def n_iter(self) -> int:
        return self.params.n_iter

    @property
    def seed(self) -> int | None:
        return self._design.seed

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Display ---

    def summary(self) -> str:
        """
        Printable rate table.

        Produces:
            GAMM ERROR RATE SIMULATION

            Setup: type-I (null)
            Iterations: 100, subjects per sample: 20, alpha: 0.05, failures: exclude

                                     parametric                 smooth     ok  failed  missing
            no_random      0.310 [0.221, 0.410]*  0.280 [0.195, 0.378]*    100       0        0
            ...
            ---
            Intervals: 95% Clopper-Pearson
            * interval excludes the nominal alpha = 0.05
        """
        p = self.params
        design = self._design
        setup = 'type-II (injected effect)' if design.effect is not None else 'type-I (null)'
        conf_pct = int(round(p.conf_level * 100))

        lines = ["\nGAMM ERROR RATE SIMULATION\n"]
        lines.append(f"Setup: {setup}")
        lines.append(
            f"Iterations: {p.n_iter}, subjects per sample: {design.n_subjects}, "
            f"alpha: {p.alpha:g}, failures: {design.on_failure}"
        )
        lines.append("")
        lines.append(
            f"{'':<20s} {'parametric':>22s} {'smooth':>22s} "
            f"{'ok':>6s} {'failed':>7s} {'missing':>8s}"
        )

        def cell(rate: float, ci: np.ndarray) -> str:
            if np.isnan(rate):
                return 'NA'
            mark = '*' if design.effect is None and not covers(tuple(ci), p.alpha) else ' '
            return f"{rate:.3f} [{ci[0]:.3f}, {ci[1]:.3f}]{mark}"

        for j, name in enumerate(p.variant_names):
            lines.append(
                f"{name:<20s} {cell(p.parametric_rate[j], p.parametric_ci[j]):>22s} "
                f"{cell(p.smooth_rate[j], p.smooth_ci[j]):>22s} "
                f"{p.n_ok[j]:6d} {p.n_failed[j]:7d} {p.n_missing[j]:8d}"
            )

        lines.append("---")
        lines.append(f"Intervals: {conf_pct}% Clopper-Pearson")
        if design.effect is None:
            lines.append(f"* interval excludes the nominal alpha = {p.alpha:g}")
        if self.warnings:
            lines.append("")
            lines.extend(f"Warning: {w}" for w in self.warnings)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SimulationSolution(n_iter={self.n_iter}, "
            f"variants={len(self.params.variant_names)}, "
            f"alpha={self.alpha:g}, backend={self.backend_name!r})"
        )
