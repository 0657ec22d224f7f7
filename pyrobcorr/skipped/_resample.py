"""
Bootstrap resample table.

One table is drawn per call and shared by every pair, so p-values and
confidence intervals of different pairs come from the same resamples.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyrobcorr.core.exceptions import ValidationError
from pyrobcorr.skipped._common import N_VARIABLES


def count_unique_per_row(indices: NDArray[np.integer]) -> NDArray[np.intp]:
    """Number of distinct values in each row of a 2D integer array."""
    if indices.shape[1] == 0:
        return np.zeros(indices.shape[0], dtype=np.intp)
    s = np.sort(indices, axis=1)
    return 1 + np.count_nonzero(np.diff(s, axis=1), axis=1)


def build_resample_table(
    n: int,
    nboot: int,
    rng: np.random.Generator,
    min_unique: int = N_VARIABLES,
) -> NDArray[np.intp]:
    """
    Draw nboot bootstrap index vectors of length n.

    Each row holds n indices drawn uniformly with replacement from
    {0, ..., n-1}. A row is accepted only if it contains more than
    `min_unique` distinct indices; rejected rows are redrawn until nboot
    rows have been accepted. Rows are accepted in draw order, so the table
    is a deterministic function of the generator state.

    Args:
        n: Number of observations.
        nboot: Number of bootstrap resamples.
        rng: Explicit random source.
        min_unique: Distinct indices a row must exceed (the number of
            correlated variables).

    Returns:
        Integer array of shape (nboot, n).

    Raises:
        ValidationError: If n <= min_unique (no row could ever qualify).
    """
    if n <= min_unique:
        raise ValidationError(
            f"n: bootstrap rows need more than {min_unique} distinct "
            f"observations, so n must be > {min_unique}, got {n}"
        )

    table = np.empty((nboot, n), dtype=np.intp)
    filled = 0
    while filled < nboot:
        draws = rng.integers(0, n, size=(nboot - filled, n))
        accepted = draws[count_unique_per_row(draws) > min_unique]
        table[filled:filled + accepted.shape[0]] = accepted
        filled += accepted.shape[0]

    return table
