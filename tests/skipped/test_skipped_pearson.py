"""
End-to-end tests for skipped_pearson().

Most tests supply p_alpha so that the Monte Carlo calibration is not run;
calibration itself is covered in test_calibration.py.
"""

import math

import numpy as np
import pytest

from conftest import (
    INJECTED_ROWS,
    FailOnIdenticalColumns,
    MedianCenter,
    WarningCenter,
    bivariate_normal,
)
from pyrobcorr.core.exceptions import ValidationError
from pyrobcorr.skipped import SkippedCorrSolution, skipped_pearson
from pyrobcorr.skipped._resample import build_resample_table


P_ALPHA = 0.05


# ═══════════════════════════════════════════════════════════════════════
# Output structure
# ═══════════════════════════════════════════════════════════════════════


class TestOutputs:

    def test_shapes_and_alignment(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=1)
        assert isinstance(res, SkippedCorrSolution)
        np.testing.assert_array_equal(res.pairs, [[0, 1], [0, 2], [1, 2]])
        assert res.r.shape == (3,)
        assert res.t.shape == (3,)
        assert res.p_values.shape == (3,)
        assert res.ci.shape == (3, 2)
        assert res.h.shape == (3,)
        assert len(res.outliers) == 3

    def test_batch_matches_single_pair_runs(self, three_variable_sample):
        batch = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=5)
        for k, pair in enumerate(batch.pairs):
            single = skipped_pearson(
                three_variable_sample, [pair], p_alpha=P_ALPHA, seed=5,
            )
            assert single.r[0] == pytest.approx(batch.r[k])
            assert single.p_values[0] == pytest.approx(batch.p_values[k])
            np.testing.assert_array_equal(single.outliers[0], batch.outliers[k])

    def test_pair_order_follows_request(self, three_variable_sample):
        fwd = skipped_pearson(three_variable_sample, [[0, 1], [1, 2]], p_alpha=P_ALPHA, seed=2)
        rev = skipped_pearson(three_variable_sample, [[1, 2], [0, 1]], p_alpha=P_ALPHA, seed=2)
        assert fwd.r[0] == pytest.approx(rev.r[1])
        assert fwd.r[1] == pytest.approx(rev.r[0])

    def test_strong_pair_stronger_than_independent(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=3)
        assert res.r[0] > 0.6
        assert abs(res.r[1]) < 0.3
        assert res.h[0]

    def test_t_statistic(self, correlated_sample):
        res = skipped_pearson(correlated_sample, p_alpha=P_ALPHA, seed=0)
        r = res.r[0]
        assert res.t[0] == pytest.approx(r * math.sqrt(98 / (1 - r ** 2)))

    def test_pvalues_in_unit_interval(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=4)
        assert np.all(res.p_values > 0)
        assert np.all(res.p_values <= 1)

    def test_ci_brackets_estimate(self, correlated_sample):
        res = skipped_pearson(correlated_sample, p_alpha=P_ALPHA, seed=6)
        lo, hi = res.ci[0]
        assert lo <= res.r[0] <= hi
        assert -1.0 <= lo < hi <= 1.0

    def test_pvalue_floored_to_bootstrap_resolution(self, rng):
        X = bivariate_normal(rng, 100, 0.9)
        res = skipped_pearson(X, p_alpha=P_ALPHA, seed=7)
        assert res.p_values[0] == pytest.approx(1.0 / 599)

    def test_nboot_changes_floor(self, rng):
        X = bivariate_normal(rng, 100, 0.9)
        res = skipped_pearson(X, p_alpha=P_ALPHA, seed=7, nboot=200)
        assert res.nboot == 200
        assert res.p_values[0] == pytest.approx(1.0 / 200)
        assert res.info['ci_positions'] == (5, 195)


# ═══════════════════════════════════════════════════════════════════════
# Reproducibility and the shared resample table
# ═══════════════════════════════════════════════════════════════════════


class TestReproducibility:

    def test_same_seed_same_results(self, three_variable_sample):
        a = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=123)
        b = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=123)
        np.testing.assert_array_equal(a.r, b.r)
        np.testing.assert_array_equal(a.p_values, b.p_values)
        np.testing.assert_array_equal(a.ci, b.ci)

    def test_threads_match_sequential(self, three_variable_sample):
        seq = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=9)
        par = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=9, n_jobs=3)
        np.testing.assert_array_equal(seq.r, par.r)
        np.testing.assert_array_equal(seq.p_values, par.p_values)
        np.testing.assert_array_equal(seq.ci, par.ci)
        for a, b in zip(seq.outliers, par.outliers):
            np.testing.assert_array_equal(a, b)
        assert par.info['n_jobs'] == 3

    def test_table_built_once_per_call(self, three_variable_sample, monkeypatch):
        calls = []

        def counting(n, nboot, rng, min_unique=2):
            calls.append((n, nboot))
            return build_resample_table(n, nboot, rng, min_unique)

        monkeypatch.setattr(
            'pyrobcorr.skipped.backends.cpu.build_resample_table', counting,
        )
        skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=0, nboot=99)
        assert calls == [(100, 99)]

    def test_table_built_without_inference(self, correlated_sample, monkeypatch):
        calls = []

        def counting(n, nboot, rng, min_unique=2):
            calls.append(n)
            return build_resample_table(n, nboot, rng, min_unique)

        monkeypatch.setattr(
            'pyrobcorr.skipped.backends.cpu.build_resample_table', counting,
        )
        skipped_pearson(correlated_sample, inference=False, correct=False, seed=0)
        assert calls == [100]


# ═══════════════════════════════════════════════════════════════════════
# Robustness to contamination
# ═══════════════════════════════════════════════════════════════════════


class TestContamination:

    def test_injected_outliers_removed(self, contaminated_sample):
        res = skipped_pearson(contaminated_sample, p_alpha=P_ALPHA, seed=11)
        assert set(INJECTED_ROWS.tolist()) <= set(res.outliers[0].tolist())

    def test_skipped_r_recovers_trend(self, contaminated_sample):
        res = skipped_pearson(contaminated_sample, p_alpha=P_ALPHA, seed=11)
        plain = np.corrcoef(contaminated_sample.T)[0, 1]
        assert abs(res.r[0] - 0.6) < 0.2
        assert plain < res.r[0] - 0.3

    def test_clean_samples_lose_few_rows(self):
        fractions = []
        for seed in range(5):
            X = bivariate_normal(np.random.default_rng(seed), 100, 0.5)
            res = skipped_pearson(X, p_alpha=P_ALPHA, seed=seed, nboot=99)
            fractions.append(res.outliers[0].size / 100)
        assert np.mean(fractions) < 0.1


# ═══════════════════════════════════════════════════════════════════════
# Multiplicity correction
# ═══════════════════════════════════════════════════════════════════════


class TestCorrection:

    def test_ecp_supplied_threshold(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=8)
        np.testing.assert_array_equal(res.h, res.p_values < P_ALPHA)
        assert res.p_alpha == P_ALPHA
        assert res.info['p_alpha_source'] == 'supplied'

    def test_flags_use_unfloored_pvalues(self, rng):
        # every bootstrap r is positive: raw p is 0, reported p is 1/599
        X = bivariate_normal(rng, 100, 0.9)
        res = skipped_pearson(X, p_alpha=0.001, seed=7)
        assert res.p_values[0] == pytest.approx(1.0 / 599)
        assert res.p_values[0] > res.p_alpha
        assert res.h[0]

    def test_hochberg(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, method="hochberg", seed=8)
        assert res.method == "Hochberg"
        assert res.h.dtype == bool
        assert res.p_alpha is None
        assert res.info['p_alpha_source'] is None
        assert res.h[0]

    def test_ecp_calibrates_lazily(self, three_variable_sample, monkeypatch):
        calls = []

        def fake_mc_corrpval(n, p, pairs, **kwargs):
            calls.append((n, p, np.asarray(pairs).tolist(), kwargs))
            return 0.0125

        monkeypatch.setattr(
            'pyrobcorr.skipped._calibration.mc_corrpval', fake_mc_corrpval,
        )
        res = skipped_pearson(three_variable_sample, seed=8, n_mc=17, nboot=99)

        assert len(calls) == 1
        n, p, pairs, kwargs = calls[0]
        assert (n, p) == (100, 3)
        assert pairs == [[0, 1], [0, 2], [1, 2]]
        assert kwargs['n_mc'] == 17
        assert kwargs['nboot'] == 99
        assert kwargs['alpha'] == 0.05
        assert res.p_alpha == 0.0125
        assert res.info['p_alpha_source'] == 'monte_carlo'
        assert 'calibration' in res.timing

    @pytest.mark.parametrize("kwargs", [
        {'p_alpha': 0.01},
        {'method': 'Hochberg'},
        {'correct': False},
        {'correct': False, 'inference': False},
    ])
    def test_no_calibration_when_not_needed(self, three_variable_sample, monkeypatch, kwargs):
        def fail(*args, **kw):
            pytest.fail("calibration must not run")

        monkeypatch.setattr('pyrobcorr.skipped._calibration.mc_corrpval', fail)
        skipped_pearson(three_variable_sample, seed=1, nboot=99, **kwargs)

    def test_no_correction(self, correlated_sample):
        res = skipped_pearson(correlated_sample, correct=False, seed=1)
        assert res.h is None
        assert res.p_alpha is None
        assert not np.isnan(res.p_values[0])

    def test_no_inference(self, correlated_sample):
        res = skipped_pearson(correlated_sample, inference=False, correct=False, seed=1)
        assert not np.isnan(res.r[0])
        assert np.isnan(res.p_values[0])
        assert np.all(np.isnan(res.ci))
        assert res.h is None


# ═══════════════════════════════════════════════════════════════════════
# Degenerate pairs
# ═══════════════════════════════════════════════════════════════════════


class TestDegenerate:

    def test_perfect_correlation_warns(self, rng):
        x = rng.standard_normal(50)
        X = np.column_stack([x, x])
        with pytest.warns(RuntimeWarning, match=r"\|r\| = 1"):
            res = skipped_pearson(
                X, p_alpha=P_ALPHA, seed=0, location_estimator=MedianCenter(),
            )
        assert res.r[0] == 1.0
        assert res.t[0] == math.inf
        assert any("|r| = 1" in w for w in res.warnings)

    def test_constant_column_warns(self, rng):
        X = np.column_stack([rng.standard_normal(40), np.full(40, 3.0)])
        with pytest.warns(RuntimeWarning, match="zero variance"):
            res = skipped_pearson(
                X, p_alpha=P_ALPHA, seed=0, location_estimator=MedianCenter(),
            )
        assert np.isnan(res.r[0])
        assert res.info['n_nan_bootstrap'] == (599,)
        assert np.isnan(res.p_values[0])
        assert not res.h[0]

    def test_failing_pair_does_not_abort_batch(self, rng):
        a = rng.standard_normal(80)
        b = 0.7 * a + 0.7 * rng.standard_normal(80)
        X = np.column_stack([a, b, a])
        with pytest.warns(RuntimeWarning, match="outlier detection failed"):
            res = skipped_pearson(
                X, p_alpha=P_ALPHA, seed=0,
                location_estimator=FailOnIdenticalColumns(),
            )
        # pair (0, 2) has identical columns
        assert np.isnan(res.r[1])
        assert np.isnan(res.p_values[1])
        assert not res.h[1]
        assert not np.isnan(res.r[0])
        assert not np.isnan(res.r[2])
        assert res.outliers[1].size == 0

    @pytest.mark.parametrize("n_jobs", [1, 3])
    def test_estimator_warnings_labelled_by_pair(self, three_variable_sample, n_jobs):
        with pytest.warns(RuntimeWarning, match="Determinant has increased"):
            res = skipped_pearson(
                three_variable_sample, p_alpha=P_ALPHA, seed=0, n_jobs=n_jobs,
                location_estimator=WarningCenter(),
            )
        for label in ("V0 ~ V1", "V0 ~ V2", "V1 ~ V2"):
            assert any(
                w.startswith(f"{label}: Determinant has increased") for w in res.warnings
            )
        assert not np.any(np.isnan(res.r))


# ═══════════════════════════════════════════════════════════════════════
# Metadata, display and backend selection
# ═══════════════════════════════════════════════════════════════════════


class TestMetadata:

    def test_info_and_timing(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=0, nboot=99)
        assert res.backend_name == 'cpu_skipped'
        assert res.info['location_estimator'] == 'mcd'
        assert res.info['iqr_estimator'] == 'idealf'
        assert res.info['n_pairs'] == 3
        assert res.info['n_outliers'] == tuple(o.size for o in res.outliers)
        for key in ('total_seconds', 'resample_table', 'pairs', 'correction'):
            assert key in res.timing

    def test_custom_estimator_names(self, correlated_sample):
        res = skipped_pearson(
            correlated_sample, p_alpha=P_ALPHA, seed=0, nboot=99,
            location_estimator=MedianCenter(),
        )
        assert res.info['location_estimator'] == 'median_stub'

    def test_summary(self, three_variable_sample):
        res = skipped_pearson(three_variable_sample, p_alpha=P_ALPHA, seed=0, nboot=99)
        text = res.summary()
        assert "SKIPPED PEARSON CORRELATION" in text
        assert "n = 100, nboot = 99, method = ECP" in text
        assert "V0 ~ V1" in text
        assert "V1 ~ V2" in text
        assert "95% CI" in text

    def test_to_dict(self, correlated_sample):
        res = skipped_pearson(correlated_sample, p_alpha=P_ALPHA, seed=0, nboot=99)
        d = res.to_dict()
        assert d['pairs'] == [[0, 1]]
        assert d['r'] == [pytest.approx(res.r[0])]
        assert isinstance(d['outliers'][0], list)
        assert d['p_alpha'] == P_ALPHA

    def test_repr(self, correlated_sample):
        res = skipped_pearson(correlated_sample, p_alpha=P_ALPHA, seed=0, nboot=99)
        assert "SkippedCorrSolution(pairs=1" in repr(res)

    def test_unknown_backend(self, correlated_sample):
        with pytest.raises(ValidationError, match="backend"):
            skipped_pearson(correlated_sample, p_alpha=P_ALPHA, backend='tpu')

    def test_invalid_n_jobs(self, correlated_sample):
        with pytest.raises(ValidationError, match="n_jobs"):
            skipped_pearson(correlated_sample, p_alpha=P_ALPHA, n_jobs=0)


# ═══════════════════════════════════════════════════════════════════════
# Repeated-sampling properties
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.slow
class TestRepeatedSampling:

    N_REP = 30

    def _runs(self, rho):
        for seed in range(self.N_REP):
            X = bivariate_normal(np.random.default_rng(1000 + seed), 60, rho)
            yield skipped_pearson(X, correct=False, seed=seed, nboot=199)

    def test_ci_contains_estimate(self):
        inside = [lo <= res.r[0] <= hi for res in self._runs(0.4) for lo, hi in res.ci]
        assert np.mean(inside) >= 0.9

    def test_ci_covers_true_correlation(self):
        covered = [lo <= 0.4 <= hi for res in self._runs(0.4) for lo, hi in res.ci]
        assert np.mean(covered) >= 0.75

    def test_null_pvalues_rarely_small(self):
        p = np.array([res.p_values[0] for res in self._runs(0.0)])
        assert np.all((p > 0) & (p <= 1))
        assert np.mean(p < 0.05) <= 0.25
