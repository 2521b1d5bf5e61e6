"""Tests for AR1 pre-whitening and the residual autocorrelation estimate."""

import numpy as np
import pytest

from pygamm.core.exceptions import ValidationError
from pygamm.gamm._ar1 import ar1_log_jacobian, ar1_transform, estimate_rho


class TestTransform:

    def test_zero_rho_is_identity(self):
        y = np.array([1.0, 2.0, 3.0])
        start = np.array([True, False, False])
        out = ar1_transform(y, start, 0.0)
        np.testing.assert_array_equal(out, y)
        assert out is not y

    def test_known_values(self):
        y = np.array([1.0, 2.0, 3.0, 5.0])
        start = np.array([True, False, True, False])
        rho = 0.6
        out = ar1_transform(y, start, rho)
        scale = 1.0 / np.sqrt(1.0 - rho ** 2)
        np.testing.assert_allclose(
            out, [1.0, (2.0 - 0.6) * scale, 3.0, (5.0 - 1.8) * scale],
        )

    def test_matrix_rows(self):
        M = np.arange(6.0).reshape(3, 2)
        start = np.array([True, False, False])
        out = ar1_transform(M, start, 0.5)
        assert out.shape == (3, 2)
        np.testing.assert_allclose(out[0], M[0])
        np.testing.assert_allclose(out[2], (M[2] - 0.5 * M[1]) / np.sqrt(0.75))

    def test_whitens_ar1_noise(self, rng):
        """Transformed AR1 errors are uncorrelated with unit-scale variance."""
        rho, n_traj, n_points = 0.7, 400, 25
        e = np.empty((n_traj, n_points))
        e[:, 0] = rng.normal(size=n_traj)
        for i in range(1, n_points):
            e[:, i] = rho * e[:, i - 1] + np.sqrt(1 - rho ** 2) * rng.normal(size=n_traj)
        start = np.zeros((n_traj, n_points), dtype=bool)
        start[:, 0] = True
        w = ar1_transform(e.ravel(), start.ravel(), rho).reshape(n_traj, n_points)
        lag1 = np.corrcoef(w[:, :-1].ravel(), w[:, 1:].ravel())[0, 1]
        assert abs(lag1) < 0.03
        assert np.var(w) == pytest.approx(1.0, abs=0.05)

    def test_length_mismatch(self):
        with pytest.raises(ValidationError, match="start has 2 elements"):
            ar1_transform(np.zeros(3), np.array([True, False]), 0.5)

    def test_first_row_must_start(self):
        with pytest.raises(ValidationError, match="first row"):
            ar1_transform(np.zeros(2), np.array([False, True]), 0.5)


class TestJacobian:

    def test_value(self):
        start = np.array([True, False, False, True, False])
        expected = -0.5 * 3 * np.log(1 - 0.25)
        assert ar1_log_jacobian(start, 0.5) == pytest.approx(expected)

    def test_zero_rho(self):
        assert ar1_log_jacobian(np.array([True, False]), 0.0) == 0.0


class TestEstimateRho:

    def test_recovers_rho(self, rng):
        rho, n_traj, n_points = 0.5, 300, 40
        e = np.empty((n_traj, n_points))
        e[:, 0] = rng.normal(size=n_traj)
        for i in range(1, n_points):
            e[:, i] = rho * e[:, i - 1] + np.sqrt(1 - rho ** 2) * rng.normal(size=n_traj)
        start = np.zeros((n_traj, n_points), dtype=bool)
        start[:, 0] = True
        assert estimate_rho(e.ravel(), start.ravel()) == pytest.approx(rho, abs=0.05)

    def test_pairs_across_boundaries_ignored(self):
        """Pairs inside a trajectory agree, pairs across boundaries would not."""
        r = np.array([1.0, 1.0, -1.0, -1.0, 1.0, 1.0, -1.0, -1.0])
        start = np.array([True, False] * 4)
        assert estimate_rho(r, start) == pytest.approx(0.5)

    def test_clipped(self):
        # Raw lag-1 estimate is -199/200
        r = np.tile([1.0, -1.0], 100)
        start = np.zeros(200, dtype=bool)
        start[0] = True
        assert estimate_rho(r, start) == -0.99

    def test_zero_residuals(self):
        assert estimate_rho(np.zeros(4), np.array([True, False, False, False])) == 0.0

    def test_rejects_matrix(self):
        with pytest.raises(ValidationError):
            estimate_rho(np.zeros((2, 2)), np.array([True, False]))
