"""
Tests for the PyGAMM exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PyGAMMError)
    - Diagnostic attributes on InsufficientDataError, SingularMatrixError,
      ConvergenceError, TermNotFoundError
    - Default attribute values (None for optional attributes)
"""

import pytest

from pygamm.core.exceptions import (
    ConvergenceError,
    DimensionError,
    InsufficientDataError,
    NumericalError,
    PyGAMMError,
    SingularMatrixError,
    TermNotFoundError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PyGAMMError."""

    def test_validation_error_is_pygamm_error(self):
        with pytest.raises(PyGAMMError):
            raise ValidationError("bad input")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong shape")

    def test_insufficient_data_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise InsufficientDataError("too few", n_required=20, n_available=5)

    def test_singular_matrix_error_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise SingularMatrixError("singular")

    def test_numerical_error_is_pygamm_error(self):
        with pytest.raises(PyGAMMError):
            raise NumericalError("computation failed")

    def test_convergence_error_is_not_numerical_error(self):
        """ConvergenceError inherits from PyGAMMError, not NumericalError."""
        err = ConvergenceError("did not converge", iterations=100)
        assert isinstance(err, PyGAMMError)
        assert not isinstance(err, NumericalError)

    def test_term_not_found_is_not_validation_error(self):
        """A missing term is a fit outcome, not an input problem."""
        err = TermNotFoundError("no term", predictor="group")
        assert isinstance(err, PyGAMMError)
        assert not isinstance(err, ValidationError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestInsufficientDataError:

    def test_all_attributes(self):
        err = InsufficientDataError(
            "Need 20 subjects", n_required=20, n_available=12, min_trajectories=10,
        )
        assert str(err) == "Need 20 subjects"
        assert err.n_required == 20
        assert err.n_available == 12
        assert err.min_trajectories == 10

    def test_min_trajectories_defaults_to_none(self):
        err = InsufficientDataError("Need 20 subjects", n_required=20, n_available=12)
        assert err.min_trajectories is None


class TestSingularMatrixError:

    def test_all_attributes(self):
        err = SingularMatrixError(
            "X is rank-deficient", matrix_name="X", rank=3, expected_rank=5,
        )
        assert str(err) == "X is rank-deficient"
        assert err.matrix_name == "X"
        assert err.rank == 3
        assert err.expected_rank == 5

    def test_defaults_are_none(self):
        err = SingularMatrixError("singular")
        assert err.matrix_name is None
        assert err.rank is None
        assert err.expected_rank is None


class TestConvergenceError:

    def test_all_attributes(self):
        err = ConvergenceError("did not converge", iterations=200, reason="ABNORMAL")
        assert err.iterations == 200
        assert err.reason == "ABNORMAL"

    def test_required_iterations(self):
        err = ConvergenceError("failed", 42)
        assert err.iterations == 42
        assert err.reason is None


class TestTermNotFoundError:

    def test_attributes(self):
        err = TermNotFoundError(
            "no parametric term for 'group'",
            predictor="group",
            available=("(Intercept)", "s(time)"),
        )
        assert err.predictor == "group"
        assert err.available == ("(Intercept)", "s(time)")

    def test_available_defaults_to_empty(self):
        err = TermNotFoundError("no term", predictor="group")
        assert err.available == ()
