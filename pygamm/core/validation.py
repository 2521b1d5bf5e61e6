"""
Input validation utilities for PyGAMM.

These validators follow the "fail fast, fail loud" principle: they raise
immediately with clear messages rather than silently correcting input.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

from typing import Any, Iterable

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from pygamm.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a floating point numpy array.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with floating dtype

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object or not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    if not np.issubdtype(result.dtype, np.floating):
        result = result.astype(np.float64)

    return result


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_1d(array: NDArray, name: str) -> None:
    """
    Verify array is 1-dimensional.

    Raises:
        DimensionError: If array is not 1D
    """
    if array.ndim != 1:
        raise DimensionError(
            f"{name}: expected 1D array, got {array.ndim}D with shape {array.shape}"
        )


def check_columns(frame: pd.DataFrame, columns: Iterable[str], name: str) -> None:
    """
    Verify a DataFrame has every requested column.

    Raises:
        ValidationError: Listing the missing and the available columns
    """
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ValidationError(
            f"{name}: missing column(s) {missing}. "
            f"Available: {list(frame.columns)}"
        )


def check_numeric_column(frame: pd.DataFrame, column: str, name: str) -> None:
    """
    Verify a DataFrame column holds numeric data.

    Raises:
        ValidationError: If the column dtype is not numeric
    """
    if not pd.api.types.is_numeric_dtype(frame[column]):
        raise ValidationError(
            f"{name}: column '{column}' has dtype {frame[column].dtype}, "
            f"expected numeric data"
        )


def check_probability(value: float, name: str, *, inclusive: bool = False) -> None:
    """
    Verify a scalar lies in (0, 1), or [0, 1] with inclusive=True.

    Raises:
        ValueError: If the value is out of range
    """
    ok = 0.0 <= value <= 1.0 if inclusive else 0.0 < value < 1.0
    if not ok:
        bounds = "[0, 1]" if inclusive else "(0, 1)"
        raise ValueError(f"{name} must be in {bounds}, got {value}")


def check_correlation(value: float, name: str) -> None:
    """
    Verify a scalar lies strictly inside (-1, 1).

    Raises:
        ValueError: If |value| >= 1
    """
    if not -1.0 < value < 1.0:
        raise ValueError(f"{name} must be in (-1, 1), got {value}")


def check_positive_int(value: int, name: str, *, minimum: int = 1) -> None:
    """
    Verify an integer is at least ``minimum``.

    Raises:
        ValueError: If the value is not an int or is too small
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
