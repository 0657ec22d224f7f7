"""
Multiple-comparison correction of skipped-correlation p-values.

Two methods:
    ECP      - compare every p-value with one critical p-value, either
               supplied or calibrated by Monte Carlo (see _calibration).
    Hochberg - step-up procedure over p-values sorted in descending order;
               only valid for n > 60.

Unlike p_adjust-style functions these return significance flags rather
than adjusted p-values, aligned with the input order.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyrobcorr.core.exceptions import ConfigurationError

VALID_METHODS = ("ECP", "Hochberg")

HOCHBERG_MIN_N = 60


def normalize_method(method: str) -> str:
    """Canonical spelling of a method name (case-insensitive match)."""
    if isinstance(method, str):
        for valid in VALID_METHODS:
            if method.lower() == valid.lower():
                return valid
    raise ConfigurationError(
        f"method must be one of {VALID_METHODS}, got {method!r}",
        option='method',
        value=method,
    )


def check_method_valid_for(method: str, n: int) -> None:
    """
    Reject method/sample-size combinations the method is not valid for.

    Raises:
        ConfigurationError: Hochberg with n <= 60
    """
    if method == "Hochberg" and n <= HOCHBERG_MIN_N:
        raise ConfigurationError(
            f"Hochberg is only valid for n > {HOCHBERG_MIN_N}, got n={n}",
            option='method',
            value=method,
        )


def ecp_significance(p: ArrayLike, p_alpha: float) -> NDArray[np.bool_]:
    """Elementwise p < p_alpha. NaN p-values are never significant."""
    return np.asarray(p, dtype=np.float64) < p_alpha


def hochberg_significance(p: ArrayLike, alpha: float) -> NDArray[np.bool_]:
    """
    Hochberg step-up significance flags.

    p-values are sorted in descending order and ranked k = 1..m from the
    largest. The first rank k with p_(k) < alpha / k, and every rank after
    it (the smaller p-values), is significant. NaN p-values sort as the
    largest and are never significant.
    """
    pv = np.asarray(p, dtype=np.float64).ravel()
    m = pv.shape[0]
    if m == 0:
        return np.zeros(0, dtype=bool)

    order = np.argsort(pv, kind='stable')[::-1]
    sorted_p = pv[order]
    thresholds = alpha / np.arange(1, m + 1, dtype=np.float64)

    h_sorted = np.zeros(m, dtype=bool)
    hits = np.flatnonzero(sorted_p < thresholds)
    if hits.size > 0:
        h_sorted[hits[0]:] = True

    h = np.empty(m, dtype=bool)
    h[order] = h_sorted
    return h


def correct(
    p: ArrayLike,
    method: str,
    alpha: float,
    p_alpha: float | None = None,
    calibrate: Callable[[], float] | None = None,
) -> tuple[NDArray[np.bool_], float | None]:
    """
    Significance flags for a batch of p-values.

    Parameters
    ----------
    p : array-like
        Raw bootstrap p-values, one per pair.
    method : str
        "ECP" or "Hochberg" (canonical spelling).
    alpha : float
        Nominal family-wise level.
    p_alpha : float, optional
        ECP critical p-value. When None, `calibrate` is called once.
    calibrate : callable, optional
        Zero-argument callable returning the ECP critical p-value.

    Returns
    -------
    (h, p_alpha)
        Flags aligned with `p`, and the ECP threshold used (None for
        Hochberg).
    """
    if method == "ECP":
        if p_alpha is None:
            if calibrate is None:
                raise ConfigurationError(
                    "ECP correction needs p_alpha or a calibration routine",
                    option='p_alpha',
                )
            p_alpha = float(calibrate())
        return ecp_significance(p, p_alpha), p_alpha

    if method == "Hochberg":
        return hochberg_significance(p, alpha), None

    raise ConfigurationError(
        f"method must be one of {VALID_METHODS}, got {method!r}",
        option='method',
        value=method,
    )
