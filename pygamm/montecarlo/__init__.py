"""
Monte Carlo estimation of GAMM type-I and type-II error rates.

Usage:
    from pygamm.data import simulate_trajectories
    from pygamm.montecarlo import simulate, default_variants

    data = simulate_trajectories(seed=1)
    result = simulate(data, default_variants(), n_iter=100, seed=42)
    print(result.summary())
    result.rates
"""

from pygamm.montecarlo._common import FitResult, IterationResult
from pygamm.montecarlo._extract import ExtractedPValues, extract_pvalues
from pygamm.montecarlo._sampler import (
    InjectedEffect, Sample, check_sample_size, draw_sample,
)
from pygamm.montecarlo.design import SimulationDesign
from pygamm.montecarlo.solution import SimulationSolution
from pygamm.montecarlo.solvers import simulate
from pygamm.montecarlo.variants import DEFAULT_VARIANTS, ModelVariant, default_variants

__all__ = [
    "simulate",
    "SimulationDesign",
    "SimulationSolution",
    "ModelVariant",
    "default_variants",
    "DEFAULT_VARIANTS",
    "draw_sample",
    "check_sample_size",
    "Sample",
    "InjectedEffect",
    "extract_pvalues",
    "ExtractedPValues",
    "FitResult",
    "IterationResult",
]
