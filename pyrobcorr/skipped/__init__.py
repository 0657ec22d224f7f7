"""
Skipped correlation module.

Robust Pearson correlation on data cleaned of bivariate outliers, with
bootstrap p-values, percentile confidence intervals and multiplicity
correction across the tested pairs.

Usage:
    from pyrobcorr.skipped import skipped_pearson

    result = skipped_pearson(X, method="ECP", p_alpha=0.0125, seed=42)
    result.r, result.p_values, result.ci, result.h, result.outliers
    print(result.summary())

Public API:
    skipped_pearson(X)           - skipped Pearson correlations
    mc_corrpval(n, p)            - Monte Carlo ECP critical p-value
    build_resample_table()       - shared bootstrap index table
    BivariateOutlierDetector     - projection-method outlier flags
    PairCorrelationEngine        - single-pair pipeline
    ecp_significance(), hochberg_significance() - multiplicity correction
"""

from pyrobcorr.skipped.solvers import skipped_pearson
from pyrobcorr.skipped._calibration import mc_corrpval, simulate_min_pvalues
from pyrobcorr.skipped._resample import build_resample_table
from pyrobcorr.skipped._outliers import BivariateOutlierDetector
from pyrobcorr.skipped._engine import PairCorrelationEngine
from pyrobcorr.skipped._multiplicity import (
    correct,
    ecp_significance,
    hochberg_significance,
)
from pyrobcorr.skipped._common import PairResult, SkippedCorrParams
from pyrobcorr.skipped.design import SkippedCorrDesign
from pyrobcorr.skipped.solution import SkippedCorrSolution

__all__ = [
    "skipped_pearson",
    "mc_corrpval",
    "simulate_min_pvalues",
    "build_resample_table",
    "BivariateOutlierDetector",
    "PairCorrelationEngine",
    "correct",
    "ecp_significance",
    "hochberg_significance",
    "PairResult",
    "SkippedCorrParams",
    "SkippedCorrDesign",
    "SkippedCorrSolution",
]
