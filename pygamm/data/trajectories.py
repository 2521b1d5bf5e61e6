"""
Tabular trajectory data.

TrajectoryData is the "I have trajectories" abstraction: a validated,
sorted DataFrame of repeated measurements plus the mapping from column
roles (subject, trajectory, time, response) to column names. It knows
nothing about models or sampling.

Usage:
    from pygamm.data import TrajectoryData

    data = TrajectoryData.from_file("f2_contours.csv",
                                    subject="speaker", trajectory="token",
                                    time="measurement_no", response="f2")
    data = TrajectoryData.from_dataframe(df)
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pygamm.core.exceptions import ValidationError
from pygamm.core.validation import check_columns, check_numeric_column


@dataclass(frozen=True, eq=False)
class TrajectoryData:
    """
    Immutable pool of trajectories grouped by subject.

    Construct via the factory classmethods, not directly. Rows are sorted
    by subject, trajectory and time, so consecutive rows of one trajectory
    are adjacent (required by the AR1 pre-whitening).

    Attributes:
        frame: The sorted data.
        subject: Column holding subject ids.
        trajectory: Column holding trajectory ids (unique within subject).
        time: Column holding the (normalized) time axis.
        response: Column holding the measured response.
    """
    frame: pd.DataFrame
    subject: str
    trajectory: str
    time: str
    response: str

    # === Construction ===

    @classmethod
    def from_dataframe(
        cls,
        frame: pd.DataFrame,
        *,
        subject: str = 'subject',
        trajectory: str = 'trajectory',
        time: str = 'time',
        response: str = 'y',
    ) -> TrajectoryData:
        """
        Validate a DataFrame and wrap it.

        Rows with a missing value in any role column are dropped with a
        warning.

        Raises:
            ValidationError: On missing columns, non-numeric time/response,
                or an empty table.
        """
        if not isinstance(frame, pd.DataFrame):
            raise ValidationError(
                f"frame: expected pandas.DataFrame, got {type(frame).__name__}"
            )
        roles = [subject, trajectory, time, response]
        if len(set(roles)) != len(roles):
            raise ValidationError(
                f"column roles must be distinct, got subject={subject!r}, "
                f"trajectory={trajectory!r}, time={time!r}, response={response!r}"
            )
        check_columns(frame, roles, "frame")
        check_numeric_column(frame, time, "frame")
        check_numeric_column(frame, response, "frame")

        complete = frame.dropna(subset=roles)
        n_dropped = len(frame) - len(complete)
        if n_dropped:
            warnings.warn(
                f"Dropped {n_dropped} row(s) with missing values in "
                f"{roles}",
                UserWarning,
                stacklevel=2,
            )
        if len(complete) == 0:
            raise ValidationError("frame: no complete rows")

        values = complete[[time, response]].to_numpy(dtype=np.float64)
        if not np.all(np.isfinite(values)):
            raise ValidationError(
                f"frame: columns '{time}'/'{response}' contain Inf values"
            )

        ordered = complete.sort_values(
            [subject, trajectory, time], kind='mergesort'
        ).reset_index(drop=True)

        return cls(
            frame=ordered,
            subject=subject,
            trajectory=trajectory,
            time=time,
            response=response,
        )

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        sep: str | None = None,
        **columns: str,
    ) -> TrajectoryData:
        """
        Load a CSV/TSV file.

        Args:
            path: File path. ``.tsv`` and ``.txt`` files default to tab
                separation, everything else to commas.
            sep: Explicit separator, overriding the suffix rule.
            **columns: Column-role names forwarded to from_dataframe().

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the table fails validation
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if sep is None:
            sep = '\t' if path.suffix.lower() in ('.tsv', '.txt') else ','
        frame = pd.read_csv(path, sep=sep)
        return cls.from_dataframe(frame, **columns)

    # === Properties ===

    @property
    def n_observations(self) -> int:
        """Number of rows."""
        return len(self.frame)

    @property
    def subjects(self) -> NDArray:
        """Sorted unique subject ids."""
        return np.asarray(pd.unique(self.frame[self.subject]))

    @property
    def n_subjects(self) -> int:
        return int(self.frame[self.subject].nunique())

    @property
    def n_trajectories(self) -> int:
        """Number of distinct (subject, trajectory) pairs."""
        return int(self.trajectory_counts().sum())

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            'n_observations': self.n_observations,
            'n_subjects': self.n_subjects,
            'n_trajectories': self.n_trajectories,
            'columns': {
                'subject': self.subject,
                'trajectory': self.trajectory,
                'time': self.time,
                'response': self.response,
            },
        }

    # === Queries ===

    def trajectory_counts(self) -> pd.Series:
        """Number of trajectories per subject, indexed by subject id."""
        return self.frame.groupby(self.subject, sort=True)[self.trajectory].nunique()

    def eligible_subjects(self, min_trajectories: int | None = None) -> NDArray:
        """
        Subjects with at least ``min_trajectories`` trajectories.

        With ``min_trajectories=None`` every subject is eligible.
        """
        counts = self.trajectory_counts()
        if min_trajectories is not None:
            counts = counts[counts >= min_trajectories]
        return counts.index.to_numpy()

    def __repr__(self) -> str:
        return (
            f"TrajectoryData(n={self.n_observations}, "
            f"subjects={self.n_subjects}, trajectories={self.n_trajectories})"
        )


def mark_trajectory_starts(
    frame: pd.DataFrame,
    subject: str,
    trajectory: str,
) -> NDArray[np.bool_]:
    """
    Flag the first row of every trajectory.

    ``frame`` must already be sorted so that rows of one trajectory are
    contiguous. A row starts a new trajectory when its (subject,
    trajectory) pair differs from the previous row's.

    Returns:
        Boolean array of length ``len(frame)``; the first row is always True.
    """
    n = len(frame)
    if n == 0:
        return np.zeros(0, dtype=bool)
    subj = frame[subject].to_numpy()
    traj = frame[trajectory].to_numpy()
    start = np.ones(n, dtype=bool)
    start[1:] = (subj[1:] != subj[:-1]) | (traj[1:] != traj[:-1])
    return start
