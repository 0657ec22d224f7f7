"""
pyrobcorr: robust (skipped) correlation with bootstrap inference.

Pearson correlations are computed after removing bivariate outliers found
with a projection method around a minimum covariance determinant center.
Inference uses a shared bootstrap resample table, and significance across
many tested pairs is corrected with an empirically calibrated threshold
(ECP) or Hochberg's step-up procedure.

Submodules:
    skipped: The skipped-correlation pipeline (skipped_pearson, mc_corrpval)
    robust: Robust location/scatter and interquartile-range estimators
"""

__version__ = "0.1.0"

from pyrobcorr import robust
from pyrobcorr import skipped

__all__ = [
    "__version__",
    "robust",
    "skipped",
]
