"""
pytest configuration and shared fixtures.
"""

import warnings

import pytest
import numpy as np

from pyrobcorr.core.exceptions import NumericalError


# Rows replaced by gross bivariate outliers in contaminated_sample
INJECTED_ROWS = np.array([3, 27, 51, 74, 98])


def bivariate_normal(rng, n, rho):
    """n draws from a standard bivariate normal with correlation rho."""
    cov = np.array([[1.0, rho], [rho, 1.0]])
    return rng.multivariate_normal(np.zeros(2), cov, size=n)


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def correlated_sample(rng):
    """100 x 2 bivariate normal sample, true correlation 0.6."""
    return bivariate_normal(rng, 100, 0.6)


@pytest.fixture
def contaminated_sample(correlated_sample):
    """correlated_sample with 5 rows replaced by points against the trend."""
    X = correlated_sample.copy()
    X[INJECTED_ROWS] = np.array([
        [6.0, -6.0],
        [-6.0, 6.0],
        [7.0, -5.0],
        [-5.0, 7.0],
        [6.5, -6.5],
    ])
    return X


@pytest.fixture
def three_variable_sample(rng):
    """100 x 3 sample: columns 0 and 1 strongly correlated, column 2 independent."""
    a = rng.standard_normal(100)
    b = 0.8 * a + 0.6 * rng.standard_normal(100)
    c = rng.standard_normal(100)
    return np.column_stack([a, b, c])


# ---------------------------------------------------------------------------
# Stub estimators (satisfy the robust estimator protocols)
# ---------------------------------------------------------------------------

class MedianCenter:
    """Coordinatewise median as location, identity scatter. Records calls."""

    def __init__(self):
        self.calls: list[tuple[tuple[int, ...], int]] = []

    @property
    def name(self) -> str:
        return 'median_stub'

    def fit(self, X, h):
        self.calls.append((X.shape, h))
        return np.median(X, axis=0), np.eye(X.shape[1])


class FixedCenter:
    """Always returns the given center."""

    def __init__(self, center):
        self.center = np.asarray(center, dtype=np.float64)

    @property
    def name(self) -> str:
        return 'fixed_stub'

    def fit(self, X, h):
        return self.center, np.eye(X.shape[1])


class FailOnIdenticalColumns(MedianCenter):
    """Raises NumericalError when both columns are identical."""

    def fit(self, X, h):
        if np.array_equal(X[:, 0], X[:, 1]):
            raise NumericalError("identical columns", estimator=self.name)
        return super().fit(X, h)


class PercentileIQR:
    """Linear-interpolation IQR along the last axis."""

    @property
    def name(self) -> str:
        return 'percentile_stub'

    def iqr(self, x):
        q75, q25 = np.percentile(x, [75, 25], axis=-1)
        return q75 - q25


class WarningCenter(MedianCenter):
    """Emits a RuntimeWarning from fit, as FAST-MCD does on singular subsets."""

    def fit(self, X, h):
        warnings.warn("Determinant has increased; this should not happen", RuntimeWarning)
        return super().fit(X, h)
