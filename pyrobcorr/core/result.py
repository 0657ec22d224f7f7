"""
Result envelope shared by all backends.

Backends return Result[P], where P is the pipeline's own frozen payload
(SkippedCorrParams for skipped correlations). The envelope carries what
every pipeline reports the same way: diagnostics in `info`, stage times,
the backend that ran, non-fatal warnings and library versions.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import numpy as np

P = TypeVar('P')  # Parameter payload type


def _default_provenance() -> dict[str, str]:
    """Version metadata attached to every result."""
    from pyrobcorr import __version__

    return {
        'pyrobcorr_version': __version__,
        'numpy_version': np.__version__,
    }


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable output of Backend.solve().

    Attributes:
        params: Pipeline payload (correlations, p-values, outliers, ...)
        info: Diagnostics such as method, CI positions, outlier counts
        timing: Seconds per stage plus 'total_seconds'; None if untimed
        backend_name: e.g. 'cpu_skipped'
        warnings: One message per degenerate pair or draw
        provenance: pyrobcorr and numpy versions

    Examples:
        >>> Result(
        ...     params=SkippedCorrParams(...),
        ...     info={'method': 'ECP', 'nboot': 599},
        ...     timing={'total_seconds': 0.4, 'resample_table': 0.01},
        ...     backend_name='cpu_skipped'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    provenance: dict[str, str] = field(default_factory=_default_provenance)

    def has_warning(self, substring: str) -> bool:
        """True if any warning message contains `substring`."""
        return any(substring in message for message in self.warnings)
