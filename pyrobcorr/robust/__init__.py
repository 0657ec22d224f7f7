"""
Robust estimators used by the bivariate outlier detector.

Public API:
    MCDEstimator        - minimum covariance determinant location/scatter
    mcd_subset_size(n)  - MCD subset size h for a bivariate sample
    IdealFourths        - ideal fourths interquartile range
    idealf(x)           - ideal fourths lower/upper quartiles
    RobustLocationScatterEstimator, RobustIQREstimator - injection protocols
"""

from pyrobcorr.robust.protocols import (
    RobustLocationScatterEstimator,
    RobustIQREstimator,
)
from pyrobcorr.robust.mcd import MCDEstimator, mcd_subset_size
from pyrobcorr.robust.idealf import IdealFourths, idealf

__all__ = [
    "RobustLocationScatterEstimator",
    "RobustIQREstimator",
    "MCDEstimator",
    "mcd_subset_size",
    "IdealFourths",
    "idealf",
]
