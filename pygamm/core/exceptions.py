"""
Exception hierarchy for PyGAMM.

All exceptions inherit from PyGAMMError so a caller can catch any
library-specific failure in one place. The Monte Carlo loop relies on
this: a fit that raises a PyGAMMError is recorded as a failed iteration
instead of aborting the whole run.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages state actual vs expected values
"""


class PyGAMMError(Exception):
    """Base exception for all PyGAMM errors."""
    pass


class ValidationError(PyGAMMError):
    """
    Input validation failed.

    Raised when user-provided data or configuration fails validation.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.
    """
    pass


class InsufficientDataError(ValidationError):
    """
    Not enough subjects (or trajectories per subject) for the requested
    sample size.

    This is a setup-time precondition: the simulation design checks it
    once before any iteration runs.

    Attributes:
        n_required: Number of subjects the design asks for
        n_available: Number of subjects that satisfy the data requirement
        min_trajectories: Trajectories each subject must have, if any
    """

    def __init__(
        self,
        message: str,
        n_required: int,
        n_available: int,
        min_trajectories: int | None = None,
    ):
        super().__init__(message)
        self.n_required = n_required
        self.n_available = n_available
        self.min_trajectories = min_trajectories


class NumericalError(PyGAMMError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during a fit.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or numerically rank-deficient.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        rank: Numerical rank, if computed
        expected_rank: Expected rank
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank


class ConvergenceError(PyGAMMError):
    """
    Iterative algorithm failed to converge.

    Raised by callers that require convergence (the Monte Carlo loop with
    ``require_convergence=True``). The fitter itself only warns.

    Attributes:
        iterations: Number of iterations completed
        reason: Optimizer message
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        reason: str | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.reason = reason


class TermNotFoundError(PyGAMMError):
    """
    No model term codes the requested predictor.

    Happens when a term is dropped from the design (e.g. a label with a
    single observed level) or when the predictor name is wrong.

    Attributes:
        predictor: Requested predictor name
        available: Labels of the terms the model does have
    """

    def __init__(self, message: str, predictor: str, available: tuple[str, ...] = ()):
        super().__init__(message)
        self.predictor = predictor
        self.available = available
