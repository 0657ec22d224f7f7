"""
Design class for the skipped-correlation pipeline.

SkippedCorrDesign encapsulates all inputs needed by backends: the sample
matrix, the pair list and the inference/correction configuration.
Immutable, validated at construction so that configuration errors are
raised before any pair is processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyrobcorr.core.exceptions import ConfigurationError, DimensionError, ValidationError
from pyrobcorr.core.validation import (
    check_2d,
    check_array,
    check_finite,
    check_min_samples,
    check_open_unit_interval,
    check_positive_int,
)
from pyrobcorr.robust.protocols import (
    RobustIQREstimator,
    RobustLocationScatterEstimator,
)
from pyrobcorr.skipped._common import (
    DEFAULT_ALPHA,
    DEFAULT_N_MC,
    DEFAULT_NBOOT,
    N_VARIABLES,
)
from pyrobcorr.skipped._multiplicity import check_method_valid_for, normalize_method


def all_pairs(p: int) -> NDArray[np.intp]:
    """All unordered column pairs (i, j), i < j, in lexicographic order."""
    pairs = np.array(list(combinations(range(p), 2)), dtype=np.intp)
    return pairs.reshape(-1, 2)


def _check_pairs(pairs, p: int) -> NDArray[np.intp]:
    """Validate a user pair list against p columns; returns (m, 2)."""
    if pairs is None:
        return all_pairs(p)

    arr = np.asarray(pairs)
    if arr.size == 0:
        return all_pairs(p)

    if not np.issubdtype(arr.dtype, np.number):
        raise ValidationError(f"pairs: non-numeric dtype {arr.dtype}")
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.isfinite(arr)) or np.any(arr != np.round(arr)):
            raise ValidationError("pairs: column indices must be integers")

    if arr.ndim == 1 and arr.shape[0] == 2:
        arr = arr.reshape(1, 2)
    elif arr.ndim == 2 and arr.shape[1] != 2 and arr.shape[0] == 2:
        arr = arr.T
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise DimensionError(
            f"pairs: expected shape (m, 2), got {np.asarray(pairs).shape}"
        )

    arr = arr.astype(np.intp)
    out_of_range = (arr < 0) | (arr >= p)
    if np.any(out_of_range):
        row = int(np.flatnonzero(out_of_range.any(axis=1))[0])
        raise ValidationError(
            f"pairs: row {row} {arr[row].tolist()} has a column index "
            f"outside [0, {p - 1}]"
        )
    same = arr[:, 0] == arr[:, 1]
    if np.any(same):
        row = int(np.flatnonzero(same)[0])
        raise ValidationError(
            f"pairs: row {row} {arr[row].tolist()} correlates a column with itself"
        )
    return arr


@dataclass(frozen=True)
class SkippedCorrDesign:
    """
    Frozen design for a skipped Pearson correlation batch.

    Attributes:
        data: Sample matrix, shape (n, p), finite float64.
        pairs: Column pairs to correlate, shape (m, 2), 0-based.
        method: Multiplicity correction, "ECP" or "Hochberg".
        alpha: Nominal level for CIs and the correction.
        p_alpha: Supplied ECP critical p-value, or None to calibrate.
        nboot: Number of bootstrap resamples.
        seed: Seed for the resample table and all derived randomness.
        inference: Compute bootstrap p-values and CIs.
        correct: Compute multiplicity-corrected significance flags.
        location_estimator: Robust center estimator, or None for MCD.
        iqr_estimator: IQR estimator, or None for ideal fourths.
        n_mc: Monte Carlo repetitions when calibrating p_alpha.
        columns: Column names, if the data carried them.
    """
    data: NDArray[np.floating[Any]]
    pairs: NDArray[np.intp]
    method: str
    alpha: float
    p_alpha: float | None
    nboot: int
    seed: int | None
    inference: bool
    correct: bool
    location_estimator: RobustLocationScatterEstimator | None
    iqr_estimator: RobustIQREstimator | None
    n_mc: int
    columns: tuple[str, ...] | None

    @classmethod
    def for_skipped_pearson(
        cls,
        data,
        pairs=None,
        method: str = "ECP",
        alpha: float = DEFAULT_ALPHA,
        p_alpha: float | None = None,
        *,
        nboot: int = DEFAULT_NBOOT,
        seed: int | None = None,
        inference: bool = True,
        correct: bool = True,
        location_estimator: RobustLocationScatterEstimator | None = None,
        iqr_estimator: RobustIQREstimator | None = None,
        n_mc: int = DEFAULT_N_MC,
    ) -> SkippedCorrDesign:
        """
        Create a skipped-correlation design with validation.

        Args:
            data: (n, p) array-like, or a table exposing .values/.columns.
            pairs: (m, 2) 0-based column pairs; a (2, m) array is
                transposed. None or empty means all unordered pairs.
            method: "ECP" (default) or "Hochberg", case-insensitive.
            alpha: Nominal level, default 0.05.
            p_alpha: ECP critical p-value; skips Monte Carlo calibration.
            nboot: Bootstrap resamples, default 599.
            seed: Random seed.
            inference: Bootstrap p-values and CIs.
            correct: Significance flags; requires inference.
            location_estimator: Robust center estimator override.
            iqr_estimator: IQR estimator override.
            n_mc: Calibration repetitions, default 1000.

        Returns:
            Validated SkippedCorrDesign.

        Raises:
            ValidationError: If the data or numeric options are invalid.
            ConfigurationError: If the method configuration is invalid.
        """
        if hasattr(data, 'values') and hasattr(data, 'columns'):
            columns = tuple(str(c) for c in data.columns)
            data_arr = check_array(data.values, 'X')
        else:
            columns = None
            data_arr = check_array(data, 'X')

        check_2d(data_arr, 'X')
        check_finite(data_arr, 'X')
        check_min_samples(data_arr, N_VARIABLES + 1, 'X')
        n, p = data_arr.shape
        if p < N_VARIABLES:
            raise DimensionError(
                f"X: need at least {N_VARIABLES} columns to correlate, got {p}"
            )

        method = normalize_method(method)
        check_method_valid_for(method, n)

        alpha = check_open_unit_interval(alpha, 'alpha')
        if p_alpha is not None and not (0.0 < p_alpha <= 1.0):
            raise ValidationError(f"p_alpha: must be in (0, 1], got {p_alpha}")

        nboot = check_positive_int(nboot, 'nboot')
        n_mc = check_positive_int(n_mc, 'n_mc')

        if correct and not inference:
            raise ConfigurationError(
                "correct=True requires inference=True: significance flags "
                "are derived from bootstrap p-values",
                option='correct',
                value=correct,
            )

        return cls(
            data=data_arr.copy(),
            pairs=_check_pairs(pairs, p),
            method=method,
            alpha=alpha,
            p_alpha=None if p_alpha is None else float(p_alpha),
            nboot=nboot,
            seed=seed,
            inference=bool(inference),
            correct=bool(correct),
            location_estimator=location_estimator,
            iqr_estimator=iqr_estimator,
            n_mc=n_mc,
            columns=columns,
        )

    @property
    def n(self) -> int:
        """Number of observations."""
        return self.data.shape[0]

    @property
    def p(self) -> int:
        """Number of variables."""
        return self.data.shape[1]

    @property
    def n_pairs(self) -> int:
        return self.pairs.shape[0]

    def label(self, column: int) -> str:
        """Column name, or 'V{index}' when the data carried no names."""
        if self.columns is not None:
            return self.columns[column]
        return f"V{column}"

    def pair_label(self, k: int) -> str:
        i, j = self.pairs[k]
        return f"{self.label(i)} ~ {self.label(j)}"

    def __repr__(self) -> str:
        return (
            f"SkippedCorrDesign(n={self.n}, p={self.p}, pairs={self.n_pairs}, "
            f"method={self.method!r}, nboot={self.nboot})"
        )
