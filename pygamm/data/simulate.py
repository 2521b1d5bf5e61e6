"""
Synthetic trajectory pools.

Generates repeated-measurement data with the dependence structure that
makes naive significance tests anti-conservative: subject-level
differences in level and curve shape, trajectory-level offsets and
autocorrelated residuals within a trajectory.

    y(s, j, t) = f(t) + a_s + b_s sin(pi t) + c_s (t - 1/2) + d_sj + e_sj(t)

with e_sj an AR1 process of lag-1 correlation rho.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from pygamm.core.validation import check_correlation, check_positive_int
from pygamm.data.trajectories import TrajectoryData


def mean_curve(t: np.ndarray) -> np.ndarray:
    """Population curve shared by all subjects."""
    return np.sin(np.pi * t) + 0.5 * t


def simulate_trajectories(
    n_subjects: int = 30,
    n_trajectories: int = 40,
    n_points: int = 11,
    *,
    rho: float = 0.6,
    sd_subject: float = 0.5,
    sd_shape: float = 0.3,
    sd_trajectory: float = 0.2,
    sd_residual: float = 0.2,
    seed: int | np.random.Generator | None = None,
) -> TrajectoryData:
    """
    Build a pool of synthetic trajectories on a normalized time axis.

    Args:
        n_subjects: Number of subjects (speakers).
        n_trajectories: Trajectories per subject.
        n_points: Measurements per trajectory, equally spaced on [0, 1].
        rho: Lag-1 autocorrelation of the residuals within a trajectory.
        sd_subject: SD of the subject random intercepts.
        sd_shape: SD of the subject curve-shape deviations.
        sd_trajectory: SD of the trajectory-level offsets.
        sd_residual: Marginal SD of the AR1 residuals.
        seed: Seed or Generator.

    Returns:
        TrajectoryData with columns subject, trajectory, time, y.
    """
    check_positive_int(n_subjects, "n_subjects")
    check_positive_int(n_trajectories, "n_trajectories")
    check_positive_int(n_points, "n_points", minimum=2)
    check_correlation(rho, "rho")

    rng = seed if isinstance(seed, np.random.Generator) else np.random.default_rng(seed)

    t = np.linspace(0.0, 1.0, n_points)
    n_traj_total = n_subjects * n_trajectories

    intercepts = rng.normal(0.0, sd_subject, size=n_subjects)
    amplitudes = rng.normal(0.0, sd_shape, size=n_subjects)
    slopes = rng.normal(0.0, sd_shape, size=n_subjects)
    offsets = rng.normal(0.0, sd_trajectory, size=n_traj_total)

    # Stationary AR1 residuals, one row per trajectory
    innovations = rng.normal(0.0, sd_residual, size=(n_traj_total, n_points))
    resid = np.empty_like(innovations)
    resid[:, 0] = innovations[:, 0]
    scale = np.sqrt(1.0 - rho ** 2)
    for i in range(1, n_points):
        resid[:, i] = rho * resid[:, i - 1] + scale * innovations[:, i]

    subj_idx = np.repeat(np.arange(n_subjects), n_trajectories)
    y = (mean_curve(t)[np.newaxis, :]
         + intercepts[subj_idx, np.newaxis]
         + amplitudes[subj_idx, np.newaxis] * np.sin(np.pi * t)[np.newaxis, :]
         + slopes[subj_idx, np.newaxis] * (t - 0.5)[np.newaxis, :]
         + offsets[:, np.newaxis]
         + resid)

    width = len(str(n_subjects))
    frame = pd.DataFrame({
        'subject': np.repeat([f"s{i + 1:0{width}d}" for i in subj_idx], n_points),
        'trajectory': np.repeat(np.tile(np.arange(n_trajectories), n_subjects), n_points),
        'time': np.tile(t, n_traj_total),
        'y': y.ravel(),
    })
    return TrajectoryData.from_dataframe(frame)
