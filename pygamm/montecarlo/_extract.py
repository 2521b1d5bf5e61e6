"""
p-value extraction for the synthetic label.

Terms are looked up by their structured role on the fitted model rather
than by matching generated labels, so a column whose name merely starts
with the predictor's name (``group2`` for ``group``) is never picked up.
"""

from __future__ import annotations

from dataclasses import dataclass

from pygamm.core.exceptions import TermNotFoundError
from pygamm.gamm._common import ROLE_DIFFERENCE_SMOOTH, ROLE_MAIN_EFFECT
from pygamm.gamm.solution import GAMMSolution


@dataclass(frozen=True)
class ExtractedPValues:
    """
    p-values of the terms that involve one predictor.

    Attributes:
        parametric: One p-value per non-reference level of the predictor.
        smooth: One p-value per difference smooth conditioned on it.
        parametric_labels: Generated names of the parametric terms.
        smooth_labels: Generated names of the difference smooths.
    """
    parametric: tuple[float, ...]
    smooth: tuple[float, ...]
    parametric_labels: tuple[str, ...] = ()
    smooth_labels: tuple[str, ...] = ()


def extract_pvalues(solution: GAMMSolution, predictor: str) -> ExtractedPValues:
    """
    Collect the p-values of ``predictor``'s parametric and smooth terms.

    Raises:
        TermNotFoundError: If the model has no parametric term for the
            predictor (e.g. the fit dropped it, or the formula lacks it).
    """
    parametric = [
        t for t in solution.params.terms
        if t.role == ROLE_MAIN_EFFECT and t.variable == predictor
    ]
    if not parametric:
        raise TermNotFoundError(
            f"no parametric term for predictor '{predictor}'",
            predictor=predictor,
            available=tuple(solution.terms),
        )
    smooth = [
        t for t in solution.params.terms
        if t.role == ROLE_DIFFERENCE_SMOOTH and t.by == predictor
    ]
    return ExtractedPValues(
        parametric=tuple(t.p_value for t in parametric),
        smooth=tuple(t.p_value for t in smooth),
        parametric_labels=tuple(t.label for t in parametric),
        smooth_labels=tuple(t.label for t in smooth),
    )
