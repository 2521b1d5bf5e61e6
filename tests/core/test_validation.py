"""
Tests for input validation utilities.

Validates every function in core/validation.py.
"""

import numpy as np
import pandas as pd
import pytest

from pygamm.core.exceptions import DimensionError, ValidationError
from pygamm.core.validation import (
    check_1d,
    check_array,
    check_columns,
    check_correlation,
    check_finite,
    check_numeric_column,
    check_positive_int,
    check_probability,
)


class TestCheckArray:
    """check_array converts to ndarray and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "x")
        assert np.issubdtype(result.dtype, np.floating)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_rejects_strings(self):
        with pytest.raises(ValidationError, match="non-numeric dtype"):
            check_array(["a", "b"], "x")


class TestCheckFinite:

    def test_accepts_finite(self):
        check_finite(np.array([0.0, 1.0]), "y")

    def test_reports_counts(self):
        with pytest.raises(ValidationError, match="1 NaN, 1 Inf"):
            check_finite(np.array([np.nan, np.inf, 1.0]), "y")


class TestCheck1d:

    def test_rejects_2d(self):
        with pytest.raises(DimensionError, match="expected 1D"):
            check_1d(np.zeros((2, 2)), "start")


class TestFrameChecks:

    def test_missing_columns_listed(self):
        frame = pd.DataFrame({'a': [1], 'b': [2]})
        with pytest.raises(ValidationError, match=r"\['c'\]"):
            check_columns(frame, ['a', 'c'], "data")

    def test_non_numeric_column(self):
        frame = pd.DataFrame({'y': ['x', 'y']})
        with pytest.raises(ValidationError, match="expected numeric"):
            check_numeric_column(frame, 'y', "data")


class TestScalarChecks:

    @pytest.mark.parametrize("value", [0.0, 1.0, -0.1, 1.5])
    def test_probability_exclusive(self, value):
        with pytest.raises(ValueError):
            check_probability(value, "alpha")

    def test_probability_inclusive_bounds(self):
        check_probability(0.0, "p", inclusive=True)
        check_probability(1.0, "p", inclusive=True)

    @pytest.mark.parametrize("value", [-1.0, 1.0, 2.0])
    def test_correlation(self, value):
        with pytest.raises(ValueError, match=r"\(-1, 1\)"):
            check_correlation(value, "rho")

    def test_positive_int_rejects_bool_and_float(self):
        with pytest.raises(ValueError, match="integer"):
            check_positive_int(True, "n_iter")
        with pytest.raises(ValueError, match="integer"):
            check_positive_int(2.0, "n_iter")

    def test_positive_int_minimum(self):
        check_positive_int(0, "max_retries", minimum=0)
        check_positive_int(np.int64(3), "n_iter")
        with pytest.raises(ValueError, match=">= 2"):
            check_positive_int(1, "n_subjects", minimum=2)
