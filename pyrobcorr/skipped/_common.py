"""
Common data structures for the skipped-correlation pipeline.

PairResult is the per-pair output of PairCorrelationEngine. SkippedCorrParams
is the batch payload wrapped by Result[P] and exposed through
SkippedCorrSolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


DEFAULT_NBOOT = 599
DEFAULT_ALPHA = 0.05
DEFAULT_N_MC = 1000

# Number of variables in a correlation; bootstrap rows need more distinct
# observations than this.
N_VARIABLES = 2


@dataclass(frozen=True)
class PairResult:
    """
    Skipped correlation for one column pair.

    p_value is the raw bootstrap p-value (not yet floored to 1/nboot);
    p_value and ci are NaN when inference was not requested.
    estimator_warnings holds the messages of warnings the robust estimators
    raised during outlier detection (e.g. FAST-MCD determinant warnings).
    """
    r: float
    t: float
    p_value: float
    ci: tuple[float, float]
    outliers: NDArray[np.intp]
    n_nan_boot: int = 0
    failure: str | None = None
    estimator_warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class SkippedCorrParams:
    """
    Parameter payload for a skipped-correlation batch.

    All arrays are aligned with `pairs` (row k describes pair k).

    - r: skipped Pearson correlation on outlier-free rows, shape (m,)
    - t: r * sqrt((n - 2) / (1 - r^2)) with the full sample size n, shape (m,)
    - p_values: two-sided bootstrap p-values, floored at 1/nboot, shape (m,)
    - ci: percentile bootstrap confidence intervals, shape (m, 2)
    - h: significance after multiplicity correction, shape (m,), or None.
      Computed from the unfloored p-values, so when p_alpha < 1/nboot a
      pair can have h True while its reported p-value is not below p_alpha.
    - outliers: 0-based row indices removed as bivariate outliers, per pair
    - p_alpha: ECP critical p-value used for h, or None
    """
    pairs: NDArray[np.intp]                    # shape (m, 2)
    r: NDArray[np.floating[Any]]
    t: NDArray[np.floating[Any]]
    p_values: NDArray[np.floating[Any]]
    ci: NDArray[np.floating[Any]]
    h: NDArray[np.bool_] | None
    outliers: tuple[NDArray[np.intp], ...]
    nboot: int
    p_alpha: float | None = None
