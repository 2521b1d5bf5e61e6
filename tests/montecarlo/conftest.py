"""
Shared fixtures for the error-rate simulation tests.

Variants here use small bases (k=5) so that a fit on a 20-subject
sample of the iid pool takes milliseconds.
"""

import pytest

from pygamm.data import TrajectoryData
from pygamm.gamm import ModelSpec, Parametric, RandomEffect, Smooth
from pygamm.montecarlo import ModelVariant


def _base_spec():
    return ModelSpec(
        'y',
        parametric=(Parametric('group'),),
        smooths=(Smooth('time', k=5), Smooth('time', by='group', k=5)),
    )


@pytest.fixture
def fast_variants():
    """Fixed-effects model and random intercept model."""
    base = _base_spec()
    return (
        ModelVariant('no_random', base),
        ModelVariant('random_intercept', ModelSpec(
            'y', parametric=base.parametric, smooths=base.smooths,
            random=(RandomEffect('subject'),),
        )),
    )


@pytest.fixture
def parametric_only():
    """Group term without a difference smooth."""
    return ModelVariant('parametric_only', ModelSpec(
        'y', parametric=(Parametric('group'),), smooths=(Smooth('time', k=5),),
    ))


@pytest.fixture
def site_pool(iid_pool):
    """iid_pool with a constant 'site' column.

    A random effect on 'site' has a single level, so every fit of a
    variant that uses it fails.
    """
    return TrajectoryData.from_dataframe(iid_pool.frame.assign(site='lab'))


@pytest.fixture
def broken():
    base = _base_spec()
    return ModelVariant('broken', ModelSpec(
        'y', parametric=base.parametric, smooths=base.smooths,
        random=(RandomEffect('site'),),
    ))
