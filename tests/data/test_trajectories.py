"""Tests for TrajectoryData and trajectory boundary markers."""

import numpy as np
import pandas as pd
import pytest

from pygamm.core.exceptions import ValidationError
from pygamm.data import TrajectoryData, mark_trajectory_starts


def _frame():
    # Deliberately unsorted: subject b first, times reversed within a trajectory
    return pd.DataFrame({
        'speaker': ['b', 'b', 'a', 'a', 'a', 'a', 'c'],
        'token': [1, 1, 1, 1, 2, 2, 1],
        'measurement_no': [1.0, 0.0, 0.0, 1.0, 0.0, 1.0, 0.0],
        'f2': [2.0, 1.0, 0.5, 0.7, 0.2, 0.4, 3.0],
    })


def _load(frame):
    return TrajectoryData.from_dataframe(
        frame, subject='speaker', trajectory='token',
        time='measurement_no', response='f2',
    )


class TestFromDataFrame:

    def test_rows_sorted_by_subject_trajectory_time(self):
        data = _load(_frame())
        f = data.frame
        assert list(f['speaker']) == ['a', 'a', 'a', 'a', 'b', 'b', 'c']
        assert list(f['token']) == [1, 1, 2, 2, 1, 1, 1]
        assert list(f.loc[f['speaker'] == 'b', 'measurement_no']) == [0.0, 1.0]

    def test_counts(self):
        data = _load(_frame())
        assert data.n_observations == 7
        assert data.n_subjects == 3
        assert data.n_trajectories == 4
        assert data.trajectory_counts().to_dict() == {'a': 2, 'b': 1, 'c': 1}

    def test_eligible_subjects(self):
        data = _load(_frame())
        assert list(data.eligible_subjects()) == ['a', 'b', 'c']
        assert list(data.eligible_subjects(2)) == ['a']

    def test_metadata_columns(self):
        meta = _load(_frame()).metadata
        assert meta['columns']['response'] == 'f2'
        assert meta['n_subjects'] == 3

    def test_missing_column(self):
        with pytest.raises(ValidationError, match="missing column"):
            TrajectoryData.from_dataframe(_frame())

    def test_non_numeric_response(self):
        frame = _frame()
        frame['f2'] = frame['f2'].astype(str)
        with pytest.raises(ValidationError, match="expected numeric"):
            _load(frame)

    def test_duplicate_roles(self):
        with pytest.raises(ValidationError, match="distinct"):
            TrajectoryData.from_dataframe(_frame(), subject='speaker',
                                          trajectory='speaker')

    def test_incomplete_rows_dropped_with_warning(self):
        frame = _frame()
        frame.loc[0, 'f2'] = np.nan
        with pytest.warns(UserWarning, match="Dropped 1 row"):
            data = _load(frame)
        assert data.n_observations == 6

    def test_inf_rejected(self):
        frame = _frame()
        frame.loc[2, 'measurement_no'] = np.inf
        with pytest.raises(ValidationError, match="Inf"):
            _load(frame)

    def test_not_a_dataframe(self):
        with pytest.raises(ValidationError, match="expected pandas.DataFrame"):
            TrajectoryData.from_dataframe({'y': [1.0]})


class TestFromFile:

    def test_csv_roundtrip(self, tmp_path):
        path = tmp_path / "contours.csv"
        _frame().to_csv(path, index=False)
        data = TrajectoryData.from_file(
            path, subject='speaker', trajectory='token',
            time='measurement_no', response='f2',
        )
        assert data.n_observations == 7

    def test_tsv_by_suffix(self, tmp_path):
        path = tmp_path / "contours.tsv"
        _frame().to_csv(path, index=False, sep='\t')
        data = TrajectoryData.from_file(
            path, subject='speaker', trajectory='token',
            time='measurement_no', response='f2',
        )
        assert data.n_subjects == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TrajectoryData.from_file(tmp_path / "nope.csv")


class TestMarkTrajectoryStarts:

    def test_boundaries(self):
        frame = pd.DataFrame({
            'subject': ['a', 'a', 'a', 'b', 'b', 'b'],
            'trajectory': [1, 1, 2, 2, 2, 3],
        })
        start = mark_trajectory_starts(frame, 'subject', 'trajectory')
        np.testing.assert_array_equal(
            start, [True, False, True, True, False, True],
        )

    def test_same_trajectory_id_across_subjects(self):
        """Trajectory ids restart per subject; the subject change still splits."""
        frame = pd.DataFrame({'subject': ['a', 'b'], 'trajectory': [1, 1]})
        np.testing.assert_array_equal(
            mark_trajectory_starts(frame, 'subject', 'trajectory'), [True, True],
        )

    def test_empty(self):
        frame = pd.DataFrame({'subject': [], 'trajectory': []})
        assert mark_trajectory_starts(frame, 'subject', 'trajectory').shape == (0,)
