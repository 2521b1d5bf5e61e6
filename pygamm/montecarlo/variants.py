"""
Model variants compared in a simulation.

Every variant tests the same fixed structure, a parametric group
difference plus a difference smooth over time,

    y ~ group + s(time) + s(time, by = group)

and differs only in how the dependence between measurements of one
subject (and within one trajectory) is modelled.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import pandas as pd

from pygamm.gamm.solution import GAMMSolution
from pygamm.gamm.solvers import gamm
from pygamm.gamm.terms import ModelSpec, Parametric, RandomEffect, RandomSmooth, Smooth


@dataclass(frozen=True)
class ModelVariant:
    """
    A named model fitted in every iteration.

    Attributes:
        name: Row label in the rate table.
        spec: Model formula.
        method: 'REML' or 'ML'.
        rho: AR1 setting passed to gamm(): None, a float, or 'auto'.
    """
    name: str
    spec: ModelSpec
    method: str = 'REML'
    rho: float | str | None = None

    def fit(self, frame: pd.DataFrame) -> GAMMSolution:
        return gamm(frame, self.spec, method=self.method, rho=self.rho)

    def has_difference_smooth(self, label: str) -> bool:
        return any(s.by == label for s in self.spec.smooths)


DEFAULT_VARIANTS = (
    'no_random',
    'random_intercept',
    'random_slope',
    'random_smooth',
    'random_smooth_ar1',
)


def default_variants(
    *,
    response: str = 'y',
    time: str = 'time',
    subject: str = 'subject',
    label: str = 'group',
    k: int = 10,
    k_random: int = 5,
    names: tuple[str, ...] | None = None,
) -> tuple[ModelVariant, ...]:
    """
    The standard set of random-effect strategies.

    Args:
        response, time, subject: Column names of the data.
        label: Column holding the synthetic group label.
        k: Basis dimension of the fixed smooths.
        k_random: Basis dimension of the per-subject random smooths.
        names: Subset of DEFAULT_VARIANTS to build, in the given order.

    Returns:
        Tuple of ModelVariant.
    """
    base = ModelSpec(
        response=response,
        parametric=(Parametric(label),),
        smooths=(Smooth(time, k=k), Smooth(time, by=label, k=k)),
    )
    random_smooth = replace(base, random=(RandomSmooth(time, subject, k=k_random),))

    catalog = {
        'no_random': ModelVariant('no_random', base),
        'random_intercept': ModelVariant(
            'random_intercept', replace(base, random=(RandomEffect(subject),)),
        ),
        'random_slope': ModelVariant(
            'random_slope', replace(base, random=(RandomEffect(subject, ('1', time)),)),
        ),
        'random_smooth': ModelVariant('random_smooth', random_smooth),
        'random_smooth_ar1': ModelVariant('random_smooth_ar1', random_smooth, rho='auto'),
    }

    if names is None:
        names = DEFAULT_VARIANTS
    unknown = [n for n in names if n not in catalog]
    if unknown:
        raise ValueError(
            f"unknown variant(s) {unknown}; choose from {list(DEFAULT_VARIANTS)}"
        )
    return tuple(catalog[n] for n in names)
