"""
CPU backend for the skipped-correlation pipeline.

The resample table is drawn once and shared read-only by every pair.
Pairs are independent and can be fanned out over a thread pool; the
bootstrap replicates of one pair are evaluated as a single numpy batch.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

import numpy as np

from pyrobcorr.core.compute.timing import Timer
from pyrobcorr.core.result import Result
from pyrobcorr.robust.idealf import IdealFourths
from pyrobcorr.robust.mcd import MCDEstimator
from pyrobcorr.skipped._common import N_VARIABLES, PairResult, SkippedCorrParams
from pyrobcorr.skipped._engine import (
    BootstrapKernel,
    PairCorrelationEngine,
    ci_positions,
    floor_pvalues,
)
from pyrobcorr.skipped._multiplicity import correct
from pyrobcorr.skipped._outliers import BivariateOutlierDetector
from pyrobcorr.skipped._resample import build_resample_table
from pyrobcorr.skipped.design import SkippedCorrDesign

_SEED_BOUND = np.iinfo(np.int32).max


class CPUSkippedCorrBackend:
    """
    CPU backend for skipped Pearson correlations.

    Parameters
    ----------
    n_jobs : int
        Worker threads across pairs. 1 (default) runs pairs sequentially.
    bootstrap_kernel : callable, optional
        Replacement for the numpy bootstrap kernel (used by the GPU backend).
    sync_cuda : bool
        Synchronize CUDA before each stage clock read, so stage times
        include queued GPU kernels. Set by the GPU backend on CUDA devices.
    """

    def __init__(
        self,
        n_jobs: int = 1,
        bootstrap_kernel: BootstrapKernel | None = None,
        sync_cuda: bool = False,
    ):
        if n_jobs < 1:
            raise ValueError(f"n_jobs must be >= 1, got {n_jobs}")
        self.n_jobs = n_jobs
        self.bootstrap_kernel = bootstrap_kernel
        self.sync_cuda = sync_cuda

    @property
    def name(self) -> str:
        return 'cpu_skipped'

    def solve(self, design: SkippedCorrDesign) -> Result[SkippedCorrParams]:
        """Run the skipped-correlation batch and return Result[SkippedCorrParams]."""
        timer = Timer(sync_cuda=self.sync_cuda)
        timer.start()

        rng = np.random.default_rng(design.seed)

        with timer.section('resample_table'):
            table = build_resample_table(design.n, design.nboot, rng, N_VARIABLES)

        location_estimator = design.location_estimator
        if location_estimator is None:
            location_estimator = MCDEstimator(
                random_state=int(rng.integers(_SEED_BOUND))
            )
        iqr_estimator = design.iqr_estimator or IdealFourths()
        engine = PairCorrelationEngine(
            BivariateOutlierDetector(location_estimator, iqr_estimator),
            self.bootstrap_kernel,
        )

        def run_pair(pair) -> PairResult:
            return engine.run(
                design.data, (int(pair[0]), int(pair[1])), table,
                design.alpha, design.inference,
            )

        with timer.section('pairs'):
            if self.n_jobs > 1 and design.n_pairs > 1:
                with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
                    pair_results = list(executor.map(run_pair, design.pairs))
            else:
                pair_results = [run_pair(pair) for pair in design.pairs]

        m = design.n_pairs
        r = np.array([res.r for res in pair_results], dtype=np.float64).reshape(m)
        t = np.array([res.t for res in pair_results], dtype=np.float64).reshape(m)
        p_raw = np.array([res.p_value for res in pair_results], dtype=np.float64).reshape(m)
        ci = np.array([res.ci for res in pair_results], dtype=np.float64).reshape(m, 2)
        outliers = tuple(res.outliers for res in pair_results)

        h = None
        p_alpha = None
        p_alpha_source = None
        if design.correct:
            if design.method == "ECP" and design.p_alpha is None:
                p_alpha_source = 'monte_carlo'
                calibration_seed = int(rng.integers(_SEED_BOUND))

                def calibrate() -> float:
                    from pyrobcorr.skipped._calibration import mc_corrpval
                    with timer.section('calibration'):
                        return mc_corrpval(
                            design.n,
                            design.p,
                            design.pairs,
                            alpha=design.alpha,
                            n_mc=design.n_mc,
                            nboot=design.nboot,
                            seed=calibration_seed,
                            location_estimator=design.location_estimator,
                            iqr_estimator=design.iqr_estimator,
                            n_jobs=self.n_jobs,
                        )
            else:
                calibrate = None
                if design.method == "ECP":
                    p_alpha_source = 'supplied'

            with timer.section('correction'):
                h, p_alpha = correct(
                    p_raw, design.method, design.alpha,
                    p_alpha=design.p_alpha, calibrate=calibrate,
                )

        p_values = floor_pvalues(p_raw, design.nboot) if design.inference else p_raw

        timer.stop()

        params = SkippedCorrParams(
            pairs=design.pairs,
            r=r,
            t=t,
            p_values=p_values,
            ci=ci,
            h=h,
            outliers=outliers,
            nboot=design.nboot,
            p_alpha=p_alpha,
        )

        info: dict[str, Any] = {
            'n': design.n,
            'p': design.p,
            'n_pairs': m,
            'nboot': design.nboot,
            'method': design.method,
            'alpha': design.alpha,
            'inference': design.inference,
            'correct': design.correct,
            'p_alpha_source': p_alpha_source,
            'ci_positions': ci_positions(design.alpha, design.nboot),
            'location_estimator': location_estimator.name,
            'iqr_estimator': iqr_estimator.name,
            'n_jobs': self.n_jobs,
            'n_outliers': tuple(int(o.size) for o in outliers),
            'n_nan_bootstrap': tuple(res.n_nan_boot for res in pair_results),
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=_collect_warnings(design, pair_results),
        )


def _collect_warnings(
    design: SkippedCorrDesign, pair_results: list[PairResult],
) -> tuple[str, ...]:
    """Non-fatal degeneracies and estimator warnings, labelled by pair."""
    messages: list[str] = []
    for k, res in enumerate(pair_results):
        label = design.pair_label(k)
        messages.extend(f"{label}: {msg}" for msg in res.estimator_warnings)
        if res.failure is not None:
            messages.append(f"{label}: outlier detection failed ({res.failure}); results are NaN")
            continue
        if np.isnan(res.r):
            messages.append(f"{label}: a cleaned column has zero variance; r is undefined")
        elif abs(res.r) >= 1.0:
            messages.append(f"{label}: |r| = 1 on cleaned data; t-statistic is not finite")
        if res.n_nan_boot > 0:
            messages.append(
                f"{label}: {res.n_nan_boot} of {design.nboot} bootstrap "
                f"correlations undefined (constant resampled column)"
            )
    return tuple(messages)
