"""
pytest configuration and shared fixtures.
"""

import numpy as np
import pandas as pd
import pytest

from pygamm.data import TrajectoryData, mark_trajectory_starts, simulate_trajectories


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def small_pool():
    """Small structured pool: 12 subjects x 4 trajectories x 6 points."""
    return simulate_trajectories(12, 4, 6, rho=0.5, seed=7)


def _iid_trajectories(n_subjects, rng, n_traj=4, n_points=6):
    """Independent noise around sin(pi * t), no subject or trajectory structure."""
    t = np.linspace(0.0, 1.0, n_points)
    n = n_subjects * n_traj * n_points
    frame = pd.DataFrame({
        'subject': np.repeat([f"s{i:02d}" for i in range(n_subjects)], n_traj * n_points),
        'trajectory': np.tile(np.repeat(np.arange(n_traj), n_points), n_subjects),
        'time': np.tile(t, n_subjects * n_traj),
    })
    frame['y'] = np.sin(np.pi * frame['time']) + rng.normal(0.0, 0.3, n)
    return TrajectoryData.from_dataframe(frame)


@pytest.fixture
def iid_pool(rng):
    """Pool of 30 subjects without any subject or trajectory structure.

    Every measurement is independent noise around a common curve, so a
    fixed-effects model is correctly specified and its tests are exact
    up to smoothing-parameter estimation.
    """
    return _iid_trajectories(30, rng)


@pytest.fixture
def large_iid_pool():
    """iid pool of 240 subjects.

    Samples of 20 subjects drawn from it overlap little, so rates estimated
    on it are not tied to the between-subject spread of one small pool.
    """
    return _iid_trajectories(240, np.random.default_rng(2024))


@pytest.fixture
def labelled(iid_pool):
    """iid_pool as a DataFrame with a subject-level label and start flags.

    The first 15 subjects are in group A, the other 15 in group B.
    """
    frame = iid_pool.frame.copy()
    subjects = sorted(frame['subject'].unique())
    in_b = frame['subject'].isin(subjects[15:]).to_numpy()
    frame['group'] = pd.Categorical(np.where(in_b, 'B', 'A'), categories=['A', 'B'])
    frame['start'] = mark_trajectory_starts(frame, 'subject', 'trajectory')
    return frame
