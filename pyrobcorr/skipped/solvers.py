"""
Solver dispatch for skipped correlations.

skipped_pearson() is the entry point: it validates the configuration,
selects a backend, runs the batch and reports non-fatal degeneracies as
RuntimeWarning.
"""

from __future__ import annotations

import warnings
from typing import Literal

from numpy.typing import ArrayLike

from pyrobcorr.core.compute.device import select_device
from pyrobcorr.core.exceptions import ValidationError
from pyrobcorr.core.validation import check_positive_int
from pyrobcorr.robust.protocols import (
    RobustIQREstimator,
    RobustLocationScatterEstimator,
)
from pyrobcorr.skipped._common import DEFAULT_ALPHA, DEFAULT_N_MC, DEFAULT_NBOOT
from pyrobcorr.skipped.backends.cpu import CPUSkippedCorrBackend
from pyrobcorr.skipped.design import SkippedCorrDesign
from pyrobcorr.skipped.solution import SkippedCorrSolution


BackendChoice = Literal['auto', 'cpu', 'gpu']


def _get_backend(backend: BackendChoice, n_jobs: int):
    """Select backend based on preference."""
    if backend == 'cpu':
        return CPUSkippedCorrBackend(n_jobs=n_jobs)

    if backend == 'auto':
        device = select_device('auto')
        if device.is_gpu:
            try:
                from pyrobcorr.skipped.backends.gpu import GPUSkippedCorrBackend
                return GPUSkippedCorrBackend(device=device, n_jobs=n_jobs)
            except ImportError:
                return CPUSkippedCorrBackend(n_jobs=n_jobs)
        return CPUSkippedCorrBackend(n_jobs=n_jobs)

    if backend == 'gpu':
        device = select_device('gpu')
        from pyrobcorr.skipped.backends.gpu import GPUSkippedCorrBackend
        return GPUSkippedCorrBackend(device=device, n_jobs=n_jobs)

    raise ValidationError(f"Unknown backend: {backend!r}")


def skipped_pearson(
    X: ArrayLike | SkippedCorrDesign,
    pairs: ArrayLike | None = None,
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
    n_jobs: int = 1,
    backend: BackendChoice = 'cpu',
) -> SkippedCorrSolution:
    """
    Skipped Pearson correlation with bootstrap inference.

    For every column pair, bivariate outliers are removed (projection
    method around an MCD center, ideal-fourths boxplot rule) and the
    Pearson correlation of the remaining rows is computed. Bootstrap
    p-values and percentile CIs use one resample table shared by all
    pairs. Significance is corrected for the number of pairs tested.

    Parameters
    ----------
    X : array-like or SkippedCorrDesign
        (n, p) sample matrix, or a table with .values/.columns.
    pairs : array-like, optional
        (m, 2) 0-based column pairs. Default all unordered pairs.
    method : str
        "ECP" (default) or "Hochberg" (only for n > 60).
    alpha : float
        Nominal level for CIs and the correction. Default 0.05.
    p_alpha : float, optional
        ECP critical p-value. If omitted under ECP, it is calibrated by
        Monte Carlo simulation (see mc_corrpval), which is slow.
    nboot : int
        Bootstrap resamples. Default 599.
    seed : int, optional
        Seed for the resample table, MCD subsets and calibration.
    inference : bool
        Compute bootstrap p-values and CIs. Default True.
    correct : bool
        Compute significance flags h. Default True; requires inference.
    location_estimator, iqr_estimator : optional
        Overrides for the MCD center and ideal-fourths IQR.
    n_mc : int
        Calibration repetitions when p_alpha is calibrated. Default 1000.
    n_jobs : int
        Worker threads across pairs. Default 1.
    backend : str
        'cpu' (default), 'gpu' or 'auto'.

    Returns
    -------
    SkippedCorrSolution

    Raises
    ------
    ConfigurationError
        Unknown method, or Hochberg with n <= 60.
    ValidationError
        Invalid data or options.
    """
    if isinstance(X, SkippedCorrDesign):
        design = X
    else:
        design = SkippedCorrDesign.for_skipped_pearson(
            X,
            pairs,
            method,
            alpha,
            p_alpha,
            nboot=nboot,
            seed=seed,
            inference=inference,
            correct=correct,
            location_estimator=location_estimator,
            iqr_estimator=iqr_estimator,
            n_mc=n_mc,
        )

    be = _get_backend(backend, check_positive_int(n_jobs, 'n_jobs'))
    result = be.solve(design)

    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    return SkippedCorrSolution(_result=result, _design=design)
