"""Tests for subject resampling and synthetic label assignment."""

import numpy as np
import pandas as pd
import pytest

from pygamm.core.exceptions import InsufficientDataError
from pygamm.data import TrajectoryData
from pygamm.montecarlo import InjectedEffect, Sample, check_sample_size, draw_sample


@pytest.fixture
def uneven_pool(iid_pool):
    """Subjects s00-s09 keep only 2 of their 4 trajectories."""
    frame = iid_pool.frame
    short = frame['subject'].isin([f"s{i:02d}" for i in range(10)])
    keep = ~short | (frame['trajectory'] < 2)
    return TrajectoryData.from_dataframe(frame.loc[keep])


class TestLabelAssignment:

    @pytest.mark.parametrize("n_subjects, sizes", [(8, (4, 4)), (7, (3, 4)), (2, (1, 1))])
    def test_group_sizes(self, iid_pool, n_subjects, sizes):
        sample = draw_sample(iid_pool, n_subjects, np.random.default_rng(0))
        assert sample.group_sizes == sizes
        assert sample.n_subjects == n_subjects

    def test_labels_constant_within_subject(self, iid_pool):
        sample = draw_sample(iid_pool, 10, np.random.default_rng(1))
        per_subject = sample.frame.groupby('subject', observed=True)['group'].nunique()
        assert (per_subject == 1).all()

    def test_groups_disjoint_and_complete(self, iid_pool):
        sample = draw_sample(iid_pool, 10, np.random.default_rng(2))
        a, b = sample.groups['A'], sample.groups['B']
        assert not set(a) & set(b)
        assert set(a) | set(b) == set(sample.frame['subject'])

    def test_label_matches_groups(self, iid_pool):
        sample = draw_sample(iid_pool, 10, np.random.default_rng(3))
        frame = sample.frame
        in_b = frame['subject'].isin(sample.groups['B'])
        assert (frame.loc[in_b, 'group'] == 'B').all()
        assert (frame.loc[~in_b, 'group'] == 'A').all()

    def test_label_is_categorical(self, iid_pool):
        sample = draw_sample(iid_pool, 4, np.random.default_rng(4), label='cond',
                             levels=('ctrl', 'treat'))
        assert sample.label == 'cond'
        assert list(sample.frame['cond'].cat.categories) == ['ctrl', 'treat']

    def test_whole_subjects_drawn(self, iid_pool):
        sample = draw_sample(iid_pool, 6, np.random.default_rng(5))
        assert len(sample.frame) == 6 * 4 * 6

    def test_start_column(self, iid_pool):
        sample = draw_sample(iid_pool, 3, np.random.default_rng(6))
        assert sample.frame['start'].sum() == 3 * 4
        assert sample.frame['start'].iloc[0]

    def test_pool_unchanged(self, iid_pool):
        before = iid_pool.frame.copy()
        draw_sample(iid_pool, 5, np.random.default_rng(7), effect=InjectedEffect(1.0))
        pd.testing.assert_frame_equal(iid_pool.frame, before)


class TestDeterminism:

    def test_same_seed_same_sample(self, iid_pool):
        a = draw_sample(iid_pool, 10, np.random.default_rng(11))
        b = draw_sample(iid_pool, 10, np.random.default_rng(11))
        pd.testing.assert_frame_equal(a.frame, b.frame)
        assert a.groups == b.groups

    def test_different_seed_different_sample(self, iid_pool):
        a = draw_sample(iid_pool, 10, np.random.default_rng(11))
        b = draw_sample(iid_pool, 10, np.random.default_rng(12))
        assert a.groups != b.groups


class TestTrajectorySubset:

    def test_only_eligible_subjects(self, uneven_pool):
        for seed in range(5):
            sample = draw_sample(uneven_pool, 20, np.random.default_rng(seed),
                                 n_trajectories=3)
            subjects = set(sample.frame['subject'])
            assert not subjects & {f"s{i:02d}" for i in range(10)}

    def test_trajectories_per_subject(self, uneven_pool):
        sample = draw_sample(uneven_pool, 8, np.random.default_rng(0), n_trajectories=3)
        counts = sample.frame.groupby('subject')['trajectory'].nunique()
        assert (counts == 3).all()
        assert len(sample.frame) == 8 * 3 * 6

    def test_not_enough_eligible(self, uneven_pool):
        with pytest.raises(InsufficientDataError) as exc_info:
            draw_sample(uneven_pool, 21, np.random.default_rng(0), n_trajectories=3)
        assert exc_info.value.n_available == 20
        assert exc_info.value.min_trajectories == 3


class TestInjectedEffect:

    def test_constant(self, iid_pool):
        base = draw_sample(iid_pool, 10, np.random.default_rng(21))
        shifted = draw_sample(iid_pool, 10, np.random.default_rng(21),
                              effect=InjectedEffect(0.8))
        diff = shifted.frame['y'] - base.frame['y']
        in_b = (base.frame['group'] == 'B').to_numpy()
        np.testing.assert_allclose(diff[in_b], 0.8)
        np.testing.assert_allclose(diff[~in_b], 0.0)

    def test_peak(self, iid_pool):
        base = draw_sample(iid_pool, 10, np.random.default_rng(22))
        shifted = draw_sample(iid_pool, 10, np.random.default_rng(22),
                              effect=InjectedEffect(1.0, 'peak'))
        diff = (shifted.frame['y'] - base.frame['y']).to_numpy()
        t = base.frame['time'].to_numpy()
        in_b = (base.frame['group'] == 'B').to_numpy()
        np.testing.assert_allclose(diff[in_b], np.sin(np.pi * t[in_b]), atol=1e-12)
        np.testing.assert_allclose(diff[in_b & (t == 0.0)], 0.0, atol=1e-12)

    def test_values(self):
        t = np.array([0.0, 0.5, 1.0])
        np.testing.assert_allclose(InjectedEffect(2.0).values(t), [2.0, 2.0, 2.0])
        np.testing.assert_allclose(InjectedEffect(2.0, 'peak').values(t), [0.0, 2.0, 0.0],
                                   atol=1e-12)

    def test_invalid(self):
        with pytest.raises(ValueError, match="shape"):
            InjectedEffect(1.0, 'ramp')
        with pytest.raises(ValueError, match="finite"):
            InjectedEffect(float('nan'))


class TestCheckSampleSize:

    def test_ok(self, iid_pool):
        check_sample_size(iid_pool, 30)

    def test_too_few_subjects_requested(self, iid_pool):
        with pytest.raises(ValueError, match=">= 2"):
            check_sample_size(iid_pool, 1)

    def test_too_many_subjects_requested(self, iid_pool):
        with pytest.raises(InsufficientDataError, match="only 30") as exc_info:
            check_sample_size(iid_pool, 31)
        assert exc_info.value.n_required == 31
        assert exc_info.value.min_trajectories is None


def test_sample_is_frozen(iid_pool):
    sample = draw_sample(iid_pool, 4, np.random.default_rng(0))
    assert isinstance(sample, Sample)
    with pytest.raises(AttributeError):
        sample.label = 'other'
