"""
In-process backend for the error-rate simulation.

run_iteration() is the unit of work shared by every backend: sample,
fit each variant, extract p-values. It is a pure function of the design
and the iteration's seed sequence, so results do not depend on which
process runs it or in which order.

SequentialBackend: runs the iterations one after another.
"""

from __future__ import annotations

import warnings
from dataclasses import replace
from typing import Callable

import numpy as np

from pygamm.core.exceptions import ConvergenceError, PyGAMMError, TermNotFoundError
from pygamm.core.timing import Timer
from pygamm.montecarlo._common import (
    ON_FAILURE_RETRY, STATUS_FAILED, STATUS_MISSING, STATUS_OK,
    FitResult, IterationResult,
)
from pygamm.montecarlo._extract import extract_pvalues
from pygamm.montecarlo._sampler import Sample, draw_sample
from pygamm.montecarlo.design import SimulationDesign
from pygamm.montecarlo.variants import ModelVariant


def _draw(design: SimulationDesign, seed_seq: np.random.SeedSequence) -> Sample:
    return draw_sample(
        design.data,
        design.n_subjects,
        np.random.default_rng(seed_seq),
        n_trajectories=design.n_trajectories,
        label=design.label,
        levels=design.levels,
        effect=design.effect,
    )


def _retry_seed(seed_seq: np.random.SeedSequence, variant_index: int,
                attempt: int) -> np.random.SeedSequence:
    """Deterministic seed for a redraw, independent of the other variants."""
    return np.random.SeedSequence(
        entropy=seed_seq.entropy,
        spawn_key=tuple(seed_seq.spawn_key) + (variant_index, attempt),
    )


def fit_variant(
    variant: ModelVariant,
    sample: Sample,
    iteration: int,
    *,
    require_convergence: bool = False,
) -> FitResult:
    """
    Fit one variant to one sample and extract the label's p-values.

    Fit errors (numerical breakdown, rank deficiency, invalid samples)
    become a 'failed' FitResult; a model without the label's parametric
    term becomes 'missing'. Warnings raised by the fit are recorded.
    """
    timer = Timer().start()
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        try:
            fit = variant.fit(sample.frame)
            if require_convergence and not fit.converged:
                raise ConvergenceError(
                    f"{variant.name} did not converge",
                    iterations=fit.params.n_iter,
                    reason=fit.warnings[0] if fit.warnings else None,
                )
            pvals = extract_pvalues(fit, sample.label)
        except TermNotFoundError as e:
            status, error, pvals, converged = STATUS_MISSING, str(e), None, False
        except (PyGAMMError, np.linalg.LinAlgError) as e:
            status, error, pvals, converged = (
                STATUS_FAILED, f"{type(e).__name__}: {e}", None, False,
            )
        else:
            status, error, converged = STATUS_OK, None, fit.converged

    messages = tuple(dict.fromkeys(str(w.message) for w in caught))
    return FitResult(
        variant=variant.name,
        iteration=iteration,
        status=status,
        parametric_p=pvals.parametric if pvals is not None else (),
        smooth_p=pvals.smooth if pvals is not None else (),
        converged=converged,
        warnings=messages,
        error=error,
        elapsed=timer.elapsed,
    )


def run_iteration(
    design: SimulationDesign,
    iteration: int,
    seed_seq: np.random.SeedSequence,
) -> IterationResult:
    """
    One iteration: SAMPLE, then FIT and EXTRACT for every variant.

    Under the 'retry' policy a failed fit is repeated on a freshly drawn
    sample, up to ``design.max_retries`` times, before it is excluded.
    """
    timer = Timer().start()
    sample = _draw(design, seed_seq)

    fits = []
    for v_idx, variant in enumerate(design.variants):
        result = fit_variant(
            variant, sample, iteration,
            require_convergence=design.require_convergence,
        )
        if design.on_failure == ON_FAILURE_RETRY:
            attempt = 0
            while result.status == STATUS_FAILED and attempt < design.max_retries:
                attempt += 1
                redraw = _draw(design, _retry_seed(seed_seq, v_idx, attempt))
                result = fit_variant(
                    variant, redraw, iteration,
                    require_convergence=design.require_convergence,
                )
            if attempt:
                result = replace(result, attempts=attempt + 1)
        fits.append(result)

    return IterationResult(
        iteration=iteration,
        fits=tuple(fits),
        group_sizes=sample.group_sizes,
        elapsed=timer.elapsed,
    )


class SequentialBackend:
    """
    Runs iterations one after another in the calling process.
    """

    @property
    def name(self) -> str:
        return 'cpu_sequential'

    def run(
        self,
        design: SimulationDesign,
        seeds: list[np.random.SeedSequence],
        on_result: Callable[[IterationResult], None] | None = None,
    ) -> list[IterationResult]:
        results = []
        for i, ss in enumerate(seeds):
            res = run_iteration(design, i, ss)
            if on_result is not None:
                on_result(res)
            results.append(res)
        return results
