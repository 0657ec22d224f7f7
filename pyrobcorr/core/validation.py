"""
Input validation for pyrobcorr.

Every check raises at once, names the offending parameter and reports the
value it saw. Nothing is silently repaired: a NaN in the sample matrix is
an error, not a row to drop.
"""

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyrobcorr.core.exceptions import DimensionError, ValidationError


def check_array(array: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """
    Convert real numeric array-like input to float64.

    Raises:
        ValidationError: If the input is ragged, object-typed, complex or
            otherwise not real numbers.
    """
    try:
        arr = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: not convertible to an array ({e})") from e

    if arr.dtype == object:
        raise ValidationError(
            f"{name}: object dtype; expected a real numeric matrix, "
            f"got mixed or non-numeric entries"
        )
    real = np.issubdtype(arr.dtype, np.number) and not np.issubdtype(
        arr.dtype, np.complexfloating
    )
    if not real:
        raise ValidationError(
            f"{name}: non-numeric dtype {arr.dtype}, expected real numbers"
        )

    return arr.astype(np.float64, copy=False)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """Reject NaN and Inf; missing values are not imputed."""
    finite = np.isfinite(array)
    if finite.all():
        return
    n_nan = int(np.count_nonzero(np.isnan(array)))
    n_inf = int(np.count_nonzero(np.isinf(array)))
    raise ValidationError(
        f"{name}: {n_nan} NaN, {n_inf} Inf entries; remove or impute them first"
    )


def check_ndim(array: NDArray[np.floating[Any]], ndim: int, name: str) -> None:
    """
    Require exactly `ndim` dimensions.

    Raises:
        DimensionError: Reporting the shape actually received.
    """
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_2d(array: NDArray[np.floating[Any]], name: str) -> None:
    check_ndim(array, 2, name)


def check_min_samples(array: NDArray[np.floating[Any]], min_samples: int, name: str) -> None:
    """Require at least `min_samples` rows (observations)."""
    n = array.shape[0]
    if n < min_samples:
        raise ValidationError(
            f"{name}: requires at least {min_samples} samples, got {n}"
        )


def check_open_unit_interval(value: float, name: str) -> float:
    """Return value as float if 0 < value < 1."""
    if not (0.0 < value < 1.0):
        raise ValidationError(f"{name}: must be in (0, 1), got {value}")
    return float(value)


def check_positive_int(value: int, name: str) -> int:
    """
    Return value as a Python int if it is an integer >= 1.

    bool is rejected even though it subclasses int.
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name}: must be an integer, got {type(value).__name__}")
    if value < 1:
        raise ValidationError(f"{name}: must be >= 1, got {value}")
    return int(value)
