"""Tests for rejection rates and Clopper-Pearson intervals."""

import math

import pytest
from scipy import stats

from pygamm.montecarlo._ci import clopper_pearson, covers, rejection_rate


class TestRejectionRate:

    def test_proportion(self):
        assert rejection_rate(5, 100) == 0.05

    def test_empty(self):
        assert math.isnan(rejection_rate(0, 0))


class TestClopperPearson:
    """Reference values from R: binom.test(x, n)$conf.int."""

    def test_interior(self):
        lo, hi = clopper_pearson(5, 100)
        assert lo == pytest.approx(0.016432, rel=1e-4)
        assert hi == pytest.approx(0.112835, rel=1e-4)

    def test_interior_beta_quantiles(self):
        """Bounds are the 2.5% and 97.5% quantiles of Beta(x, n-x+1), Beta(x+1, n-x)."""
        lo, hi = clopper_pearson(5, 100)
        assert lo == pytest.approx(stats.beta.ppf(0.025, 5, 96), rel=1e-7)
        assert hi == pytest.approx(stats.beta.ppf(0.975, 6, 95), rel=1e-7)

    def test_zero_rejections(self):
        lo, hi = clopper_pearson(0, 10)
        assert lo == 0.0
        assert hi == pytest.approx(1 - 0.025 ** 0.1, rel=1e-8)

    def test_all_rejections(self):
        lo, hi = clopper_pearson(10, 10)
        assert lo == pytest.approx(0.025 ** 0.1, rel=1e-8)
        assert hi == 1.0

    def test_conf_level_widens(self):
        narrow = clopper_pearson(20, 200, conf_level=0.90)
        wide = clopper_pearson(20, 200, conf_level=0.99)
        assert wide[0] < narrow[0] < 0.1 < narrow[1] < wide[1]

    def test_empty(self):
        lo, hi = clopper_pearson(0, 0)
        assert math.isnan(lo) and math.isnan(hi)


class TestCovers:

    def test_contains(self):
        assert covers((0.02, 0.09), 0.05)
        assert covers((0.05, 0.09), 0.05)

    def test_excludes(self):
        assert not covers((0.2, 0.4), 0.05)

    def test_nan(self):
        assert not covers((float('nan'), float('nan')), 0.05)
