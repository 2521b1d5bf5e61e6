"""
Trajectory data loading and synthesis.

Public API:
    TrajectoryData          — validated pool of trajectories
    mark_trajectory_starts  — AR1 boundary markers for sorted data
    simulate_trajectories   — synthetic pool with subject/trajectory structure
"""

from pygamm.data.trajectories import TrajectoryData, mark_trajectory_starts
from pygamm.data.simulate import simulate_trajectories

__all__ = [
    "TrajectoryData",
    "mark_trajectory_starts",
    "simulate_trajectories",
]
