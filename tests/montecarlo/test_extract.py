"""Tests for structured p-value extraction."""

import numpy as np
import pandas as pd
import pytest

from pygamm.core.exceptions import TermNotFoundError
from pygamm.gamm import ModelSpec, Parametric, Smooth, gamm
from pygamm.montecarlo import extract_pvalues


def _spec(*parametric, by='group'):
    smooths = (Smooth('time', k=5),)
    if by is not None:
        smooths += (Smooth('time', by=by, k=5),)
    return ModelSpec('y', parametric=tuple(Parametric(p) for p in parametric),
                     smooths=smooths)


class TestExtractPValues:

    def test_two_level_label(self, labelled):
        fit = gamm(labelled, _spec('group'))
        pv = extract_pvalues(fit, 'group')
        assert pv.parametric_labels == ('groupB',)
        assert pv.smooth_labels == ('s(time):groupB',)
        assert pv.parametric == (fit.term('groupB').p_value,)
        assert pv.smooth == (fit.term('s(time):groupB').p_value,)

    def test_prefix_named_column_ignored(self, labelled, rng):
        """'group2' starts with 'group' but is a different predictor."""
        frame = labelled.copy()
        subjects = frame['subject'].unique()
        decoy = dict(zip(subjects, rng.permutation(np.resize(['A', 'B'], len(subjects)))))
        frame['group2'] = frame['subject'].map(decoy)
        fit = gamm(frame, _spec('group', 'group2'))
        assert 'group2B' in fit.terms

        pv = extract_pvalues(fit, 'group')
        assert pv.parametric_labels == ('groupB',)
        assert pv.smooth_labels == ('s(time):groupB',)

        decoy_pv = extract_pvalues(fit, 'group2')
        assert decoy_pv.parametric_labels == ('group2B',)
        assert decoy_pv.smooth == ()

    def test_three_levels(self, labelled):
        frame = labelled.copy()
        codes = frame['subject'].str[1:].astype(int) % 3
        frame['group'] = pd.Categorical(np.array(['A', 'B', 'C'])[codes])
        fit = gamm(frame, _spec('group'))
        pv = extract_pvalues(fit, 'group')
        assert pv.parametric_labels == ('groupB', 'groupC')
        assert pv.smooth_labels == ('s(time):groupB', 's(time):groupC')

    def test_no_difference_smooth(self, labelled):
        fit = gamm(labelled, _spec('group', by=None))
        pv = extract_pvalues(fit, 'group')
        assert len(pv.parametric) == 1
        assert pv.smooth == ()

    def test_predictor_not_in_model(self, labelled):
        fit = gamm(labelled, _spec(by=None))
        with pytest.raises(TermNotFoundError) as exc_info:
            extract_pvalues(fit, 'group')
        assert exc_info.value.predictor == 'group'
        assert '(Intercept)' in exc_info.value.available

    def test_single_observed_level(self, labelled):
        """A label with one observed level drops out of the design."""
        frame = labelled.copy()
        frame['group'] = pd.Categorical(['A'] * len(frame), categories=['A', 'B'])
        fit = gamm(frame, _spec('group'))
        with pytest.raises(TermNotFoundError):
            extract_pvalues(fit, 'group')
