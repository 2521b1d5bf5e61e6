"""
Generalized additive mixed models (Gaussian, identity link).

Public API:
    gamm()          — fit a GAMM by REML or ML, optionally with AR1 residuals
    GAMMSolution    — result wrapper with term tables and summary()
    ModelSpec       — structured model formula
    Parametric, Smooth, RandomEffect, RandomSmooth — formula terms
"""

from pygamm.gamm.terms import (
    ModelSpec, Parametric, Smooth, RandomEffect, RandomSmooth,
)
from pygamm.gamm.solvers import gamm
from pygamm.gamm.solution import GAMMSolution
from pygamm.gamm._common import TermTest

__all__ = [
    "gamm",
    "GAMMSolution",
    "ModelSpec",
    "Parametric",
    "Smooth",
    "RandomEffect",
    "RandomSmooth",
    "TermTest",
]
