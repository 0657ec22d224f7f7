"""
Solution wrapper for skipped-correlation results.

SkippedCorrSolution wraps Result[SkippedCorrParams] and provides
convenient accessors and a tabular summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyrobcorr.core.result import Result
from pyrobcorr.skipped._common import SkippedCorrParams

if TYPE_CHECKING:
    from pyrobcorr.skipped.design import SkippedCorrDesign


@dataclass
class SkippedCorrSolution:
    """
    User-facing skipped-correlation results.

    Every per-pair array is aligned with `pairs`: row k of r, t, p_values,
    ci and h, and outliers[k], all describe pairs[k].
    """
    _result: Result[SkippedCorrParams]
    _design: 'SkippedCorrDesign'

    # --- Per-pair results ---

    @property
    def pairs(self) -> NDArray[np.intp]:
        """Tested column pairs (0-based), shape (m, 2)."""
        return self._result.params.pairs

    @property
    def r(self) -> NDArray[np.floating[Any]]:
        """Skipped Pearson correlations, shape (m,)."""
        return self._result.params.r

    @property
    def t(self) -> NDArray[np.floating[Any]]:
        """t-statistics based on the full sample size, shape (m,)."""
        return self._result.params.t

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided bootstrap p-values, shape (m,). NaN without inference."""
        return self._result.params.p_values

    @property
    def ci(self) -> NDArray[np.floating[Any]]:
        """Percentile bootstrap confidence intervals, shape (m, 2)."""
        return self._result.params.ci

    @property
    def h(self) -> NDArray[np.bool_] | None:
        """
        Significance after multiplicity correction, or None if not computed.

        Derived from the raw p-values before the 1/nboot floor is applied.
        """
        return self._result.params.h

    @property
    def outliers(self) -> tuple[NDArray[np.intp], ...]:
        """0-based row indices removed as bivariate outliers, per pair."""
        return self._result.params.outliers

    @property
    def p_alpha(self) -> float | None:
        """ECP critical p-value used for h."""
        return self._result.params.p_alpha

    @property
    def nboot(self) -> int:
        return self._result.params.nboot

    # --- Configuration ---

    @property
    def method(self) -> str:
        return self._design.method

    @property
    def alpha(self) -> float:
        return self._design.alpha

    @property
    def seed(self) -> int | None:
        return self._design.seed

    # --- Metadata ---

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Export ---

    def to_dict(self) -> dict[str, Any]:
        """Per-pair results as plain Python lists, keyed by field name."""
        h = self.h
        return {
            'pairs': self.pairs.tolist(),
            'r': self.r.tolist(),
            't': self.t.tolist(),
            'p_values': self.p_values.tolist(),
            'ci': self.ci.tolist(),
            'h': None if h is None else h.tolist(),
            'outliers': [o.tolist() for o in self.outliers],
            'p_alpha': self.p_alpha,
        }

    # --- Display ---

    def summary(self) -> str:
        """
        Tabular summary, one row per pair.

        Produces:
            SKIPPED PEARSON CORRELATION

            n = 100, nboot = 599, method = ECP (p_alpha = 0.0123)

                  pair         r        t   p-value          95% CI   sig  outliers
               V0 ~ V1   0.61234   7.6543    0.0017  [0.488, 0.712]     *         5
        """
        lines = ["\nSKIPPED PEARSON CORRELATION\n"]

        header = f"n = {self._design.n}, nboot = {self.nboot}, method = {self.method}"
        if self.p_alpha is not None:
            header += f" (p_alpha = {self.p_alpha:.4g})"
        lines.append(header)
        lines.append("")

        labels = [self._design.pair_label(k) for k in range(self.pairs.shape[0])]
        width = max([len("pair")] + [len(s) for s in labels])
        conf_pct = f"{100 * (1 - self.alpha):g}% CI"

        lines.append(
            f"{'pair':>{width}s} {'r':>9s} {'t':>9s} {'p-value':>9s} "
            f"{conf_pct:>17s} {'sig':>4s} {'outliers':>9s}"
        )
        for k, label in enumerate(labels):
            sig = ""
            if self.h is not None:
                sig = "*" if self.h[k] else ""
            ci_str = f"[{self.ci[k, 0]:.3f}, {self.ci[k, 1]:.3f}]"
            lines.append(
                f"{label:>{width}s} {self.r[k]:9.5f} {self.t[k]:9.4f} "
                f"{self.p_values[k]:9.4g} {ci_str:>17s} {sig:>4s} "
                f"{self.outliers[k].size:9d}"
            )

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"  {w}" for w in self.warnings)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SkippedCorrSolution(pairs={self.pairs.shape[0]}, "
            f"method={self.method!r}, nboot={self.nboot}, "
            f"backend={self.backend_name!r})"
        )
