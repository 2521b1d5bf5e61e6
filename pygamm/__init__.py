"""
PyGAMM: type-I and type-II error simulation for GAMMs on trajectory data.

Resamples subjects from a pool of trajectories, attaches a synthetic
group label, fits generalized additive mixed models with different
random-effect structures and reports how often the label is found
significant.

Submodules:
    data: Trajectory loading and synthetic pools
    gamm: Gaussian GAMM fitting (REML/ML, AR1 residuals)
    montecarlo: The error-rate simulation
"""

__version__ = "0.1.0"

from pygamm import data
from pygamm import gamm
from pygamm import montecarlo
from pygamm.gamm import gamm as fit_gamm
from pygamm.montecarlo import simulate

__all__ = [
    "__version__",
    "data",
    "gamm",
    "montecarlo",
    "fit_gamm",
    "simulate",
]
