"""
Monte Carlo calibration of the ECP critical p-value.

Under the global null (independent normal variables), the smallest of the
m pairwise skipped-correlation p-values is simulated n_mc times. The
critical p-value is the alpha quantile of these minima, so that comparing
every pair with it controls the family-wise error rate at alpha for this
particular procedure, sample size and pair list.

This is slow: every repetition runs the full pipeline (outlier detection
and nboot bootstrap replicates for each pair).
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyrobcorr.core.exceptions import DimensionError, ValidationError
from pyrobcorr.core.validation import check_open_unit_interval, check_positive_int
from pyrobcorr.robust.protocols import (
    RobustIQREstimator,
    RobustLocationScatterEstimator,
)
from pyrobcorr.skipped._common import DEFAULT_ALPHA, DEFAULT_N_MC, DEFAULT_NBOOT, N_VARIABLES
from pyrobcorr.skipped.backends.cpu import CPUSkippedCorrBackend
from pyrobcorr.skipped.design import SkippedCorrDesign

_SEED_BOUND = np.iinfo(np.int32).max


def simulate_min_pvalues(
    n: int,
    p: int,
    pairs: ArrayLike | None = None,
    *,
    n_mc: int = DEFAULT_N_MC,
    nboot: int = DEFAULT_NBOOT,
    cov: ArrayLike | None = None,
    seed: int | None = None,
    location_estimator: RobustLocationScatterEstimator | None = None,
    iqr_estimator: RobustIQREstimator | None = None,
    n_jobs: int = 1,
) -> NDArray[np.floating[Any]]:
    """
    Minimum pairwise p-value of n_mc simulated null datasets.

    Each dataset is n draws from N(0, cov), cov defaulting to the identity.

    Returns:
        Array of shape (n_mc,).
    """
    n = check_positive_int(n, 'n')
    p = check_positive_int(p, 'p')
    if n <= N_VARIABLES or p < N_VARIABLES:
        raise ValidationError(
            f"calibration needs n > {N_VARIABLES} and p >= {N_VARIABLES}, got n={n}, p={p}"
        )
    n_mc = check_positive_int(n_mc, 'n_mc')

    if cov is None:
        cov_arr = np.eye(p)
    else:
        cov_arr = np.asarray(cov, dtype=np.float64)
        if cov_arr.shape != (p, p):
            raise DimensionError(f"cov: expected shape ({p}, {p}), got {cov_arr.shape}")

    rng = np.random.default_rng(seed)
    backend = CPUSkippedCorrBackend(n_jobs=n_jobs)
    mean = np.zeros(p)
    min_p = np.empty(n_mc, dtype=np.float64)

    for i in range(n_mc):
        sample = rng.multivariate_normal(mean, cov_arr, size=n)
        design = SkippedCorrDesign.for_skipped_pearson(
            sample,
            pairs,
            method="ECP",
            nboot=nboot,
            seed=int(rng.integers(_SEED_BOUND)),
            correct=False,
            location_estimator=location_estimator,
            iqr_estimator=iqr_estimator,
        )
        p_values = backend.solve(design).params.p_values
        min_p[i] = np.nan if np.all(np.isnan(p_values)) else np.nanmin(p_values)

    return min_p


def mc_corrpval(
    n: int,
    p: int,
    pairs: ArrayLike | None = None,
    *,
    alpha: float = DEFAULT_ALPHA,
    n_mc: int = DEFAULT_N_MC,
    nboot: int = DEFAULT_NBOOT,
    cov: ArrayLike | None = None,
    seed: int | None = None,
    location_estimator: RobustLocationScatterEstimator | None = None,
    iqr_estimator: RobustIQREstimator | None = None,
    n_jobs: int = 1,
) -> float:
    """
    Critical p-value for ECP multiplicity correction.

    Parameters
    ----------
    n, p : int
        Sample size and number of variables of the data to be analysed.
    pairs : array-like, optional
        Tested column pairs (0-based); default all unordered pairs.
    alpha : float
        Family-wise level, default 0.05.
    n_mc : int
        Monte Carlo repetitions, default 1000.
    nboot : int
        Bootstrap resamples per repetition, default 599.
    cov : array-like, optional
        Null covariance of the simulated data, default identity.
    seed : int, optional
        Random seed.
    location_estimator, iqr_estimator : optional
        Estimator overrides, as for skipped_pearson().
    n_jobs : int
        Worker threads across pairs within each repetition.

    Returns
    -------
    float
        The alpha quantile of the simulated minimum p-values (midpoint
        percentile interpolation).
    """
    alpha = check_open_unit_interval(alpha, 'alpha')
    min_p = simulate_min_pvalues(
        n, p, pairs,
        n_mc=n_mc,
        nboot=nboot,
        cov=cov,
        seed=seed,
        location_estimator=location_estimator,
        iqr_estimator=iqr_estimator,
        n_jobs=n_jobs,
    )
    return float(np.nanpercentile(min_p, alpha * 100.0, method='hazen'))
