"""
Skipped Pearson correlation for one column pair.

Pure numpy kernels (pearson_r, t_statistic, bootstrap_r, percentile_ci,
bootstrap_pvalue) plus PairCorrelationEngine, which chains them with the
outlier detector.

Conventions kept from the published method:
    - t uses the full sample size n, not the number of kept rows.
    - Bootstrap replicates apply the observed keep mask to the positions
      of each resampled matrix; outliers are not re-detected per draw.
"""

from __future__ import annotations

import math
import threading
import warnings
from contextlib import contextmanager
from typing import Any, Callable, Iterator

import numpy as np
from numpy.typing import NDArray

from pyrobcorr.core.exceptions import NumericalError
from pyrobcorr.skipped._common import PairResult
from pyrobcorr.skipped._outliers import BivariateOutlierDetector


BootstrapKernel = Callable[
    [NDArray[np.floating[Any]], NDArray[np.intp], NDArray[np.bool_]],
    NDArray[np.floating[Any]],
]

# Upper bound on resampled values held at once by bootstrap_r.
_BOOTSTRAP_BLOCK_ELEMENTS = 1 << 22

# warnings.catch_warnings swaps process-wide state; pair workers share it.
_WARNINGS_LOCK = threading.Lock()


@contextmanager
def _captured_warnings() -> Iterator[list[warnings.WarningMessage]]:
    with _WARNINGS_LOCK, warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        yield caught


def pearson_r(a: NDArray[np.floating[Any]], b: NDArray[np.floating[Any]]) -> float:
    """Pearson correlation of two vectors; NaN if either is constant."""
    a = a - np.mean(a)
    b = b - np.mean(b)
    with np.errstate(invalid='ignore', divide='ignore'):
        return float(np.sum(a * b) / np.sqrt(np.sum(a ** 2) * np.sum(b ** 2)))


def t_statistic(r: float, n: int) -> float:
    """
    t = r * sqrt((n - 2) / (1 - r^2)).

    |r| = 1 gives an infinite t rather than an error.
    """
    with np.errstate(invalid='ignore', divide='ignore'):
        return float(np.float64(r) * np.sqrt((n - 2) / (1.0 - np.float64(r) ** 2)))


def bootstrap_r(
    X: NDArray[np.floating[Any]],
    table: NDArray[np.intp],
    keep: NDArray[np.bool_],
) -> NDArray[np.floating[Any]]:
    """
    Correlation of every bootstrap resample, restricted to kept positions.

    Row b of the result is the Pearson r of X[table[b]][keep]. Resamples
    are evaluated in blocks of rows so that at most about
    _BOOTSTRAP_BLOCK_ELEMENTS resampled pairs are held in memory.
    """
    nboot = table.shape[0]
    rows = max(1, _BOOTSTRAP_BLOCK_ELEMENTS // max(1, int(np.count_nonzero(keep))))
    out = np.empty(nboot, dtype=np.float64)
    for start in range(0, nboot, rows):
        Xb = X[table[start:start + rows][:, keep]]
        Xb = Xb - Xb.mean(axis=1, keepdims=True)
        a = Xb[..., 0]
        b = Xb[..., 1]
        with np.errstate(invalid='ignore', divide='ignore'):
            out[start:start + rows] = np.sum(a * b, axis=1) / np.sqrt(
                np.sum(a ** 2, axis=1) * np.sum(b ** 2, axis=1)
            )
    return out


def ci_positions(alpha: float, nboot: int) -> tuple[int, int]:
    """
    1-indexed positions of the CI bounds in the sorted bootstrap values.

    lower = round(alpha * nboot / 2) with halves rounded away from zero,
    at least 1; upper = nboot - lower, at least lower.
    """
    lower = max(1, int(math.floor(alpha * nboot / 2.0 + 0.5)))
    upper = max(lower, nboot - lower)
    return lower, upper


def percentile_ci(
    sorted_r: NDArray[np.floating[Any]], alpha: float,
) -> tuple[float, float]:
    """Percentile confidence interval from ascending bootstrap values."""
    lower, upper = ci_positions(alpha, sorted_r.shape[0])
    return float(sorted_r[lower - 1]), float(sorted_r[upper - 1])


def bootstrap_pvalue(r_boot: NDArray[np.floating[Any]]) -> float:
    """
    Two-sided bootstrap p-value: 2 * min(Q, 1 - Q), Q = P*(r < 0).

    NaN replicates count as non-negative; if every replicate is NaN the
    p-value is NaN. The result may be exactly 0; see floor_pvalues().
    """
    if np.all(np.isnan(r_boot)):
        return math.nan
    q = np.count_nonzero(r_boot < 0) / r_boot.shape[0]
    return 2.0 * min(q, 1.0 - q)


def floor_pvalues(p: NDArray[np.floating[Any]], nboot: int) -> NDArray[np.floating[Any]]:
    """Replace exact zeros by 1/nboot, the resolution of the bootstrap."""
    p = p.copy()
    p[p == 0] = 1.0 / nboot
    return p


class PairCorrelationEngine:
    """
    Runs the skipped correlation for single column pairs.

    Parameters
    ----------
    detector : BivariateOutlierDetector
        Outlier detector, called once per pair.
    bootstrap_kernel : callable, optional
        fn(X, table, keep) -> (nboot,) replicate correlations.
        Default bootstrap_r (numpy); the GPU backend supplies a torch one.
    """

    def __init__(
        self,
        detector: BivariateOutlierDetector,
        bootstrap_kernel: BootstrapKernel | None = None,
    ):
        self.detector = detector
        self.bootstrap_kernel = bootstrap_kernel or bootstrap_r

    def run(
        self,
        data: NDArray[np.floating[Any]],
        pair: tuple[int, int],
        table: NDArray[np.intp],
        alpha: float,
        inference: bool = True,
    ) -> PairResult:
        """
        Skipped correlation of columns `pair` of `data`.

        A pair whose outlier detection fails numerically yields NaN
        results with `failure` set, so that one degenerate pair cannot
        abort a batch. Warnings raised by the robust estimators are
        collected into `estimator_warnings` instead of reaching the caller.
        """
        X = data[:, [pair[0], pair[1]]]
        n = X.shape[0]

        with _captured_warnings() as caught:
            try:
                flags, outliers = self.detector.detect(X)
            except NumericalError as e:
                failure = str(e)
            else:
                failure = None
        estimator_warnings = tuple(str(w.message) for w in caught)

        if failure is not None:
            return PairResult(
                r=math.nan,
                t=math.nan,
                p_value=math.nan,
                ci=(math.nan, math.nan),
                outliers=np.empty(0, dtype=np.intp),
                failure=failure,
                estimator_warnings=estimator_warnings,
            )

        keep = ~flags
        r = pearson_r(X[keep, 0], X[keep, 1])
        t = t_statistic(r, n)

        if not inference:
            return PairResult(
                r=r, t=t, p_value=math.nan, ci=(math.nan, math.nan),
                outliers=outliers, estimator_warnings=estimator_warnings,
            )

        r_boot = np.sort(self.bootstrap_kernel(X, table, keep))
        return PairResult(
            r=r,
            t=t,
            p_value=bootstrap_pvalue(r_boot),
            ci=percentile_ci(r_boot, alpha),
            outliers=outliers,
            n_nan_boot=int(np.count_nonzero(np.isnan(r_boot))),
            estimator_warnings=estimator_warnings,
        )
