"""
Wall-clock timing for fits and simulation runs.

A Timer records the overall run between start() and stop() plus any
number of named phases. Phases entered more than once accumulate, so a
loop body can be timed with the same name on every pass.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Accumulating phase timer.

    Usage:
        timer = Timer()
        timer.start()
        with timer.section('setup'):
            design = GAMMDesign.from_dataframe(df, spec)
        with timer.section('optimization'):
            opt = minimize(...)
        timer.stop()
        timer.result()
        # {'total_seconds': 0.5, 'setup': 0.1, 'optimization': 0.4}
    """

    def __init__(self):
        self._phases: dict[str, float] = {}
        self._t0: float | None = None
        self._total: float | None = None

    def start(self) -> 'Timer':
        self._t0 = time.perf_counter()
        self._total = None
        return self

    def stop(self) -> None:
        self._total = self.elapsed

    @property
    def elapsed(self) -> float:
        """Seconds since start(), frozen once stop() has been called."""
        if self._t0 is None:
            raise RuntimeError("Timer has not been started")
        if self._total is not None:
            return self._total
        return time.perf_counter() - self._t0

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._phases[name] = self._phases.get(name, 0.0) + time.perf_counter() - t0

    def result(self) -> dict[str, float]:
        """'total_seconds' plus one entry per phase, in first-entered order."""
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._total, **self._phases}
