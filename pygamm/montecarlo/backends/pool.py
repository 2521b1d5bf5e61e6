"""
Process-pool backend for the error-rate simulation.

Iterations are independent, so they are distributed over a
ProcessPoolExecutor using the 'spawn' start method. The design is
shipped to each worker once through the pool initializer; tasks carry
only the iteration index and its seed sequence.

A per-iteration timeout is measured from the moment a worker begins the
iteration: the worker reports the iteration index on a queue before it
samples, and the clock starts when that report arrives. Time spent
waiting in the executor's call queue or importing the stack in a fresh
worker is not counted. A worker cannot be interrupted mid-fit, so a
timed-out iteration is recorded as failed and its worker is abandoned;
the pool is shut down at the end without waiting for it.
"""

from __future__ import annotations

import multiprocessing
import queue
import time
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from typing import Callable

import numpy as np

from pygamm.montecarlo._common import STATUS_FAILED, FitResult, IterationResult
from pygamm.montecarlo.backends.cpu import run_iteration
from pygamm.montecarlo.design import SimulationDesign

_POLL_INTERVAL = 0.05

# Per-process state, set by the pool initializer
_WORKER_DESIGN: SimulationDesign | None = None
_WORKER_STARTED = None


def _init_worker(design: SimulationDesign, started=None) -> None:
    global _WORKER_DESIGN, _WORKER_STARTED
    _WORKER_DESIGN = design
    _WORKER_STARTED = started


def _run_task(iteration: int, seed_seq: np.random.SeedSequence) -> IterationResult:
    if _WORKER_STARTED is not None:
        _WORKER_STARTED.put(iteration)
    return run_iteration(_WORKER_DESIGN, iteration, seed_seq)


def _drain(started_q, started: dict[int, float]) -> None:
    """Stamp every iteration reported as begun since the last poll."""
    now = time.monotonic()
    while True:
        try:
            i = started_q.get_nowait()
        except queue.Empty:
            return
        started.setdefault(i, now)


def failed_iteration(design: SimulationDesign, iteration: int, reason: str) -> IterationResult:
    """An iteration whose every variant failed for the same reason."""
    return IterationResult(
        iteration=iteration,
        fits=tuple(
            FitResult(
                variant=name,
                iteration=iteration,
                status=STATUS_FAILED,
                attempts=0,
                error=reason,
            )
            for name in design.variant_names
        ),
    )


class ProcessPoolBackend:
    """
    Runs iterations in worker processes, optionally with a timeout.
    """

    @property
    def name(self) -> str:
        return 'process_pool'

    def run(
        self,
        design: SimulationDesign,
        seeds: list[np.random.SeedSequence],
        on_result: Callable[[IterationResult], None] | None = None,
    ) -> list[IterationResult]:
        ctx = multiprocessing.get_context('spawn')
        started_q = ctx.Queue() if design.timeout is not None else None
        executor = ProcessPoolExecutor(
            max_workers=design.n_jobs,
            mp_context=ctx,
            initializer=_init_worker,
            initargs=(design, started_q),
        )
        results: list[IterationResult] = []

        def collect(res: IterationResult) -> None:
            if on_result is not None:
                on_result(res)
            results.append(res)

        try:
            pending: dict[Future, int] = {
                executor.submit(_run_task, i, ss): i for i, ss in enumerate(seeds)
            }
            # iteration -> monotonic time its worker began it
            started: dict[int, float] = {}

            while pending:
                done, _ = wait(
                    pending,
                    timeout=_POLL_INTERVAL if design.timeout is not None else None,
                    return_when=FIRST_COMPLETED,
                )
                for fut in done:
                    collect(fut.result())
                    pending.pop(fut)

                if design.timeout is None:
                    continue

                _drain(started_q, started)
                now = time.monotonic()
                for fut, i in list(pending.items()):
                    if i in started and now - started[i] > design.timeout:
                        del pending[fut]
                        fut.cancel()
                        collect(failed_iteration(
                            design, i,
                            f"timeout: exceeded {design.timeout:g} s",
                        ))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            if started_q is not None:
                started_q.close()

        return results
