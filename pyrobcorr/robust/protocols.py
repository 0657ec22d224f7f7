"""
Estimator protocols for bivariate outlier detection.

The outlier detector depends on two robust estimators that are
injected at construction time so that they can be replaced (e.g. by a
different robust covariance method, or by stubs in tests).
"""

from typing import Any, Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray


@runtime_checkable
class RobustLocationScatterEstimator(Protocol):
    """
    Robust multivariate location and scatter.

    fit() receives an (n, p) sample and the size h of the subset whose
    covariance determinant is minimised (h <= n). It returns the
    location, shape (p,), and scatter matrix, shape (p, p).
    """

    @property
    def name(self) -> str:
        ...

    def fit(
        self, X: NDArray[np.floating[Any]], h: int,
    ) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        ...


@runtime_checkable
class RobustIQREstimator(Protocol):
    """
    Robust interquartile range along the last axis.

    iqr() receives an array of shape (..., n) and returns the upper minus
    lower quartile for every leading index, shape (...).
    """

    @property
    def name(self) -> str:
        ...

    def iqr(self, x: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        ...
