"""
Design class for the error-rate simulation.

SimulationDesign encapsulates all inputs the backends need to run the
iterations. Immutable, validated at construction.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from pygamm.core.exceptions import ValidationError
from pygamm.core.validation import check_positive_int, check_probability
from pygamm.data.trajectories import TrajectoryData
from pygamm.montecarlo._common import FAILURE_POLICIES
from pygamm.montecarlo._sampler import InjectedEffect, check_sample_size
from pygamm.montecarlo.variants import ModelVariant, default_variants


@dataclass(frozen=True)
class SimulationDesign:
    """
    Frozen design for a type-I/type-II error simulation.

    Attributes:
        data: Pool of trajectories to resample from.
        variants: Model variants fitted in every iteration.
        n_iter: Number of iterations.
        n_subjects: Subjects drawn per iteration.
        n_trajectories: Trajectories kept per subject, or None for all.
        seed: Root seed of the run.
        alpha: Significance level of the tests.
        on_failure: 'exclude', 'retry' or 'nonsignificant'.
        max_retries: Redraws per failed fit under 'retry'.
        require_convergence: Treat non-converged fits as failed.
        n_jobs: Worker processes (1 runs in-process unless a timeout is set).
        timeout: Seconds allowed per iteration, or None.
        effect: Effect injected into the second group (type-II setup).
        conf_level: Confidence level of the rate intervals.
        label: Name of the synthetic label column.
        levels: The two label levels; the first is the reference.
    """
    data: TrajectoryData
    variants: tuple[ModelVariant, ...]
    n_iter: int
    n_subjects: int
    n_trajectories: int | None
    seed: int | None
    alpha: float
    on_failure: str
    max_retries: int
    require_convergence: bool
    n_jobs: int
    timeout: float | None
    effect: InjectedEffect | None
    conf_level: float
    label: str
    levels: tuple[str, str] = ('A', 'B')

    @property
    def variant_names(self) -> tuple[str, ...]:
        return tuple(v.name for v in self.variants)

    @property
    def uses_pool(self) -> bool:
        return self.n_jobs > 1 or self.timeout is not None

    @classmethod
    def for_simulation(
        cls,
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
    ) -> SimulationDesign:
        """
        Create a simulation design with validation.

        Args:
            data: TrajectoryData, or a DataFrame with the default column
                names (subject, trajectory, time, y).
            variants: Sequence of ModelVariant; defaults to
                default_variants() on the data's column names.
            effect: InjectedEffect, or a number for a constant effect.

        Returns:
            Validated SimulationDesign.

        Raises:
            ValueError: If a setting is out of range.
            ValidationError: If the data or the variants do not fit
                together.
            InsufficientDataError: If the pool has too few subjects.
        """
        if isinstance(data, pd.DataFrame):
            data = TrajectoryData.from_dataframe(data)
        if not isinstance(data, TrajectoryData):
            raise ValidationError(
                f"data: expected TrajectoryData or DataFrame, got {type(data).__name__}"
            )

        check_positive_int(n_iter, "n_iter")
        check_positive_int(max_retries, "max_retries", minimum=0)
        check_positive_int(n_jobs, "n_jobs")
        check_probability(alpha, "alpha")
        check_probability(conf_level, "conf_level")
        if on_failure not in FAILURE_POLICIES:
            raise ValueError(
                f"on_failure must be one of {FAILURE_POLICIES}, got {on_failure!r}"
            )
        if timeout is not None and not timeout > 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, (int, np.integer))):
            raise ValueError(f"seed must be an integer or None, got {seed!r}")

        roles = (data.subject, data.trajectory, data.time, data.response)
        if label in roles or label == 'start':
            raise ValidationError(
                f"label column '{label}' collides with a data column role"
            )

        check_sample_size(data, n_subjects, n_trajectories)

        if effect is not None and not isinstance(effect, InjectedEffect):
            effect = InjectedEffect(float(effect))

        if variants is None:
            variants = default_variants(
                response=data.response, time=data.time,
                subject=data.subject, label=label,
            )
        variants = tuple(variants)
        if not variants:
            raise ValueError("need at least one model variant")
        for v in variants:
            if not isinstance(v, ModelVariant):
                raise ValidationError(
                    f"variants: expected ModelVariant, got {type(v).__name__}"
                )
        names = [v.name for v in variants]
        if len(set(names)) != len(names):
            raise ValueError(f"variant names must be unique, got {names}")

        available = set(data.frame.columns) | {label, 'start'}
        for v in variants:
            missing = [c for c in v.spec.variables() if c not in available]
            if missing:
                raise ValidationError(
                    f"variant '{v.name}' uses column(s) {missing} not in the data"
                )
            if not any(t.variable == label for t in v.spec.parametric):
                raise ValidationError(
                    f"variant '{v.name}' has no parametric term for '{label}'"
                )

        return cls(
            data=data,
            variants=variants,
            n_iter=int(n_iter),
            n_subjects=int(n_subjects),
            n_trajectories=n_trajectories,
            seed=None if seed is None else int(seed),
            alpha=float(alpha),
            on_failure=on_failure,
            max_retries=int(max_retries),
            require_convergence=bool(require_convergence),
            n_jobs=int(n_jobs),
            timeout=None if timeout is None else float(timeout),
            effect=effect,
            conf_level=float(conf_level),
            label=label,
        )
