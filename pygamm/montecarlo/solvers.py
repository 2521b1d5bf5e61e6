"""
Public API for the type-I/type-II error simulation.

simulate() draws N samples from a trajectory pool, fits every model
variant to each, and tabulates how often the synthetic group effect is
declared significant.
"""

from __future__ import annotations

import logging

import numpy as np

from pygamm.core.result import Result
from pygamm.core.timing import Timer
from pygamm.montecarlo._ci import clopper_pearson, rejection_rate
from pygamm.montecarlo._common import (
    ON_FAILURE_NONSIGNIFICANT, STATUS_FAILED, STATUS_MISSING, STATUS_OK,
    IterationResult, SimulationParams,
)
from pygamm.montecarlo._sampler import InjectedEffect
from pygamm.montecarlo.backends.cpu import SequentialBackend
from pygamm.montecarlo.backends.pool import ProcessPoolBackend
from pygamm.montecarlo.design import SimulationDesign
from pygamm.montecarlo.solution import SimulationSolution

logger = logging.getLogger(__name__)


def simulate(
    data,
    variants=None,
    *,
    n_iter: int = 100,
    n_subjects: int = 20,
    n_trajectories: int | None = None,
    seed: int | None = None,
    alpha: float = 0.05,
    on_failure: str = 'exclude',
    max_retries: int = 3,
    require_convergence: bool = False,
    n_jobs: int = 1,
    timeout: float | None = None,
    effect: InjectedEffect | float | None = None,
    conf_level: float = 0.95,
    label: str = 'group',
) -> SimulationSolution:
    """
    Estimate rejection rates of GAMM significance tests by simulation.

    Every iteration draws ``n_subjects`` subjects, assigns half of them
    at random to a synthetic group, fits each model variant and records
    the p-values of the group's parametric term and difference smooth.
    Without an injected effect the label is unrelated to the data, so
    the rates estimate the type-I error; with one they estimate power.

    Args:
        data: TrajectoryData or DataFrame (subject, trajectory, time, y).
        variants: Model variants to compare. Defaults to
            default_variants().
        n_iter: Number of iterations.
        n_subjects: Subjects per sample.
        n_trajectories: Trajectories kept per subject (None keeps all).
        seed: Root seed. Each iteration gets its own child of
            SeedSequence(seed), so results are reproducible regardless of
            n_jobs.
        alpha: Significance level.
        on_failure: What a failed fit counts as: 'exclude' drops it from
            the rate, 'retry' refits on a new sample up to
            ``max_retries`` times and then drops it, 'nonsignificant'
            counts it as p = 1.
        max_retries: Redraws per failed fit under 'retry'.
        require_convergence: Treat non-converged fits as failed.
        n_jobs: Worker processes.
        timeout: Seconds allowed per iteration; runs in a process pool.
        effect: Effect added to the second group (type-II setup); a
            number is a constant shift.
        conf_level: Confidence level of the Clopper-Pearson intervals.
        label: Name of the synthetic group column.

    Returns:
        SimulationSolution with the rate table, intervals, counts and
        every per-iteration FitResult.

    Examples:
        >>> data = simulate_trajectories(seed=1)
        >>> result = simulate(data, n_iter=100, n_subjects=20, seed=42)
        >>> print(result.summary())
    """
    design = SimulationDesign.for_simulation(
        data, variants,
        n_iter=n_iter,
        n_subjects=n_subjects,
        n_trajectories=n_trajectories,
        seed=seed,
        alpha=alpha,
        on_failure=on_failure,
        max_retries=max_retries,
        require_convergence=require_convergence,
        n_jobs=n_jobs,
        timeout=timeout,
        effect=effect,
        conf_level=conf_level,
        label=label,
    )
    backend = ProcessPoolBackend() if design.uses_pool else SequentialBackend()

    timer = Timer()
    timer.start()

    root = np.random.SeedSequence(design.seed)
    seeds = root.spawn(design.n_iter)

    logger.info(
        "Simulating %d iterations x %d variants (%d subjects per sample, "
        "backend=%s)",
        design.n_iter, len(design.variants), design.n_subjects, backend.name,
    )
    progress = _ProgressLog(design.n_iter)

    with timer.section('iterations'):
        iterations = backend.run(design, seeds, on_result=progress)
    iterations = sorted(iterations, key=lambda r: r.iteration)

    with timer.section('summary'):
        params = _summarize(design, iterations)

    timer.stop()

    warn_list = []
    for name, failed, missing in zip(params.variant_names, params.n_failed, params.n_missing):
        if failed:
            warn_list.append(f"{name}: {failed} of {design.n_iter} fits failed")
        if missing:
            warn_list.append(f"{name}: label term missing in {missing} fits")

    result = Result(
        params=params,
        info={
            'n_iter': design.n_iter,
            'n_subjects': design.n_subjects,
            'n_trajectories': design.n_trajectories,
            'seed': design.seed,
            'entropy': root.entropy,
            'on_failure': design.on_failure,
            'effect': design.effect,
            'n_jobs': design.n_jobs,
            'timeout': design.timeout,
        },
        timing=timer.result(),
        backend_name=backend.name,
        warnings=tuple(warn_list),
    )
    return SimulationSolution(_result=result, _design=design)


class _ProgressLog:
    """Logs per-iteration failures and periodic progress."""

    def __init__(self, total: int):
        self.total = total
        self.done = 0
        self.step = max(1, total // 10)

    def __call__(self, res: IterationResult) -> None:
        self.done += 1
        for fit in res.fits:
            if fit.status != STATUS_OK:
                logger.warning(
                    "iteration %d, %s: %s (%s)",
                    res.iteration, fit.variant, fit.status, fit.error,
                )
        if self.done % self.step == 0 or self.done == self.total:
            logger.info("completed %d/%d iterations", self.done, self.total)


def _summarize(
    design: SimulationDesign,
    iterations: list[IterationResult],
) -> SimulationParams:
    """Fold the per-iteration results into per-variant rates."""
    fits = tuple(f for it in iterations for f in it.fits)
    count_failed = design.on_failure == ON_FAILURE_NONSIGNIFICANT
    v = len(design.variants)

    n_ok = np.zeros(v, dtype=np.int_)
    n_failed = np.zeros(v, dtype=np.int_)
    n_missing = np.zeros(v, dtype=np.int_)
    n_par = np.zeros(v, dtype=np.int_)
    rej_par = np.zeros(v, dtype=np.int_)
    n_smo = np.zeros(v, dtype=np.int_)
    rej_smo = np.zeros(v, dtype=np.int_)

    for j, variant in enumerate(design.variants):
        tests_smooth = variant.has_difference_smooth(design.label)
        for fit in (f for f in fits if f.variant == variant.name):
            if fit.status == STATUS_OK:
                n_ok[j] += 1
                n_par[j] += 1
                rej_par[j] += _rejects(fit.parametric_p, design.alpha)
                if fit.smooth_p:
                    n_smo[j] += 1
                    rej_smo[j] += _rejects(fit.smooth_p, design.alpha)
            elif fit.status == STATUS_MISSING:
                n_missing[j] += 1
            elif fit.status == STATUS_FAILED:
                n_failed[j] += 1
                if count_failed:
                    n_par[j] += 1
                    if tests_smooth:
                        n_smo[j] += 1

    par_ci = np.array([clopper_pearson(rej_par[j], n_par[j], design.conf_level)
                       for j in range(v)]).reshape(v, 2)
    smo_ci = np.array([clopper_pearson(rej_smo[j], n_smo[j], design.conf_level)
                       for j in range(v)]).reshape(v, 2)

    return SimulationParams(
        fits=fits,
        variant_names=design.variant_names,
        n_iter=design.n_iter,
        alpha=design.alpha,
        conf_level=design.conf_level,
        n_ok=n_ok,
        n_failed=n_failed,
        n_missing=n_missing,
        n_parametric=n_par,
        parametric_rejections=rej_par,
        n_smooth=n_smo,
        smooth_rejections=rej_smo,
        parametric_rate=np.array([rejection_rate(rej_par[j], n_par[j]) for j in range(v)]),
        smooth_rate=np.array([rejection_rate(rej_smo[j], n_smo[j]) for j in range(v)]),
        parametric_ci=par_ci,
        smooth_ci=smo_ci,
    )


def _rejects(pvalues: tuple[float, ...], alpha: float) -> bool:
    """A fit rejects when any of the label's terms is significant."""
    return bool(min(pvalues) < alpha)
