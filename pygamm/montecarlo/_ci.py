"""
Binomial summaries of rejection counts.

A rejection rate estimated from N independent iterations is a binomial
proportion; its uncertainty is reported with the exact Clopper-Pearson
interval, matching R's binom.test().
"""

from __future__ import annotations

import numpy as np
from scipy import stats as sp_stats


def rejection_rate(rejections: int, n: int) -> float:
    """Proportion of rejections, NaN when there is nothing to count."""
    if n == 0:
        return float('nan')
    return rejections / n


def clopper_pearson(rejections: int, n: int, conf_level: float = 0.95) -> tuple[float, float]:
    """
    Exact binomial confidence interval for a rejection rate.

    Args:
        rejections: Number of p-values below alpha.
        n: Number of valid p-values.
        conf_level: Confidence level, e.g. 0.95.

    Returns:
        (lower, upper); (NaN, NaN) when n is 0.
    """
    if n == 0:
        return float('nan'), float('nan')
    ci = sp_stats.binomtest(int(rejections), int(n)).proportion_ci(
        confidence_level=conf_level, method='exact',
    )
    return float(ci.low), float(ci.high)


def covers(rate_ci: tuple[float, float], alpha: float) -> bool:
    """Whether a rate interval contains the nominal alpha."""
    lo, hi = rate_ci
    if np.isnan(lo) or np.isnan(hi):
        return False
    return lo <= alpha <= hi
