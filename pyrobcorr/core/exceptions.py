"""
Exception hierarchy for pyrobcorr.

All exceptions inherit from PyRobCorrError to allow catching any
library-specific error. Configuration problems are a kind of validation
failure and are always raised before any computation starts.

Messages state what was expected and what was received; structured
details (the offending option, the failing estimator) are attributes.
"""


class PyRobCorrError(Exception):
    """Base exception for all pyrobcorr errors."""
    pass


class ValidationError(PyRobCorrError):
    """Input data or an option value is invalid."""
    pass


class DimensionError(ValidationError):
    """A sample matrix, pair list or covariance has the wrong shape."""
    pass


class ConfigurationError(ValidationError):
    """
    The requested analysis configuration is invalid.

    Raised for an unknown multiplicity-correction method, or for a method
    whose validity conditions the data do not meet (e.g. Hochberg with too
    few observations).

    Attributes:
        option: Name of the offending option
        value: The rejected value
    """

    def __init__(
        self,
        message: str,
        option: str | None = None,
        value: object = None,
    ):
        super().__init__(message)
        self.option = option
        self.value = value


class NumericalError(PyRobCorrError):
    """
    A robust estimator failed on one column pair.

    Raised when a robust estimator cannot be fitted to the data, e.g. when
    the selected columns are collinear enough that no subset has a
    non-singular covariance.

    Attributes:
        estimator: Name of the estimator that failed, if known
    """

    def __init__(self, message: str, estimator: str | None = None):
        super().__init__(message)
        self.estimator = estimator
