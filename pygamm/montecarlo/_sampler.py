"""
Subject resampling with a synthetic group label.

Each simulation iteration draws a set of subjects from the pool, splits
them at random into two groups and attaches the group as a new column.
Labels are assigned per subject, so all trajectories of one subject
share a label and no subject is in both groups. Under the type-I setup
the label is independent of the response by construction; the type-II
setup adds a known effect to one group's responses.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from pygamm.core.exceptions import InsufficientDataError
from pygamm.core.validation import check_positive_int
from pygamm.data.trajectories import TrajectoryData, mark_trajectory_starts

_SHAPES = ('constant', 'peak')


@dataclass(frozen=True)
class InjectedEffect:
    """
    Known group difference added to the second group's responses.

    Attributes:
        size: Amplitude of the difference on the response scale.
        shape: 'constant' shifts the whole curve; 'peak' adds
            size * sin(pi * t) on the time axis rescaled to [0, 1], so
            the curves differ in the middle but not at the edges.
    """
    size: float
    shape: str = 'constant'

    def __post_init__(self):
        if self.shape not in _SHAPES:
            raise ValueError(f"shape must be one of {_SHAPES}, got {self.shape!r}")
        if not np.isfinite(self.size):
            raise ValueError(f"size must be finite, got {self.size}")

    def values(self, t: np.ndarray) -> np.ndarray:
        """Effect at normalized times t in [0, 1]."""
        if self.shape == 'constant':
            return np.full_like(t, self.size, dtype=np.float64)
        return self.size * np.sin(np.pi * t)


@dataclass(frozen=True)
class Sample:
    """
    One resampled dataset.

    Attributes:
        frame: Rows of the chosen subjects (and trajectories), sorted,
            with the label column and a boolean ``start`` column.
        label: Name of the label column.
        groups: Subject ids per label level, in level order.
    """
    frame: pd.DataFrame
    label: str
    groups: dict[str, tuple]

    @property
    def n_subjects(self) -> int:
        return sum(len(s) for s in self.groups.values())

    @property
    def group_sizes(self) -> tuple[int, ...]:
        return tuple(len(s) for s in self.groups.values())


def check_sample_size(
    data: TrajectoryData,
    n_subjects: int,
    n_trajectories: int | None = None,
) -> None:
    """
    Verify that the pool can supply ``n_subjects`` subjects.

    Raises:
        ValueError: If n_subjects < 2 or n_trajectories < 1.
        InsufficientDataError: If fewer than ``n_subjects`` subjects have
            at least ``n_trajectories`` trajectories.
    """
    check_positive_int(n_subjects, "n_subjects", minimum=2)
    if n_trajectories is not None:
        check_positive_int(n_trajectories, "n_trajectories")
    n_available = len(data.eligible_subjects(n_trajectories))
    if n_available < n_subjects:
        qualifier = (
            f" with at least {n_trajectories} trajectories"
            if n_trajectories is not None else ""
        )
        raise InsufficientDataError(
            f"Need {n_subjects} subjects{qualifier}, "
            f"but the data has only {n_available}",
            n_required=n_subjects,
            n_available=n_available,
            min_trajectories=n_trajectories,
        )


def draw_sample(
    data: TrajectoryData,
    n_subjects: int,
    rng: np.random.Generator,
    *,
    n_trajectories: int | None = None,
    label: str = 'group',
    levels: tuple[str, str] = ('A', 'B'),
    effect: InjectedEffect | None = None,
) -> Sample:
    """
    Draw subjects without replacement and label them at random.

    The first level receives ``n_subjects // 2`` subjects and the second
    level the rest, so group sizes differ by at most one.

    Args:
        data: Pool of trajectories.
        n_subjects: Number of subjects to draw.
        rng: Random generator; the only source of randomness.
        n_trajectories: If given, only subjects with at least this many
            trajectories are eligible, and that many trajectories are
            kept per subject.
        label: Name of the label column added to the sample.
        levels: The two label levels; the first is the reference level.
        effect: Optional effect added to the second level's responses.

    Returns:
        Sample with the label and start columns attached.
    """
    check_sample_size(data, n_subjects, n_trajectories)

    eligible = data.eligible_subjects(n_trajectories)
    chosen = rng.choice(eligible, size=n_subjects, replace=False)
    n_first = n_subjects // 2
    first = np.sort(chosen[:n_first])
    second = np.sort(chosen[n_first:])

    frame = data.frame
    subj = frame[data.subject].to_numpy()
    keep = np.isin(subj, chosen)

    if n_trajectories is not None:
        keep_traj = np.zeros(len(frame), dtype=bool)
        traj = frame[data.trajectory].to_numpy()
        for s in np.sort(chosen):
            rows = subj == s
            pool = np.unique(traj[rows])
            picked = rng.choice(pool, size=n_trajectories, replace=False)
            keep_traj |= rows & np.isin(traj, picked)
        keep &= keep_traj

    sample = frame.loc[keep].reset_index(drop=True)
    in_second = np.isin(sample[data.subject].to_numpy(), second)
    sample[label] = pd.Categorical(
        np.where(in_second, levels[1], levels[0]), categories=list(levels),
    )

    if effect is not None:
        t = frame[data.time].to_numpy(dtype=np.float64)
        t_min, t_max = t.min(), t.max()
        span = t_max - t_min if t_max > t_min else 1.0
        t_norm = (sample[data.time].to_numpy(dtype=np.float64) - t_min) / span
        shift = np.where(in_second, effect.values(t_norm), 0.0)
        sample[data.response] = sample[data.response].to_numpy(dtype=np.float64) + shift

    sample['start'] = mark_trajectory_starts(sample, data.subject, data.trajectory)

    return Sample(
        frame=sample,
        label=label,
        groups={levels[0]: tuple(first), levels[1]: tuple(second)},
    )
