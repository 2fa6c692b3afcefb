"""
Integration tests for the inference entry points
"""

import pytest
import numpy as np
import pandas as pd
import sys
import os
from scipy import stats

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

from poisson_gmc import inference, run_chains, summarize_posterior
from poisson_gmc.datasets import simulate_poisson_process
from poisson_gmc.inference import default_n_bins
from poisson_gmc.sampler import BetaIndMode
from poisson_gmc.errors import (
    InvalidObservationError,
    InvalidParameterError,
    RunCancelledError,
)


class TestDefaults:
    """Test default window and grid resolution."""

    @pytest.mark.parametrize("n_obs, expected", [(4, 1), (7, 1), (40, 10), (200, 50), (1000, 50)])
    def test_default_n_bins(self, n_obs, expected):
        assert default_n_bins(n_obs) == expected

    def test_window_defaults_to_last_observation(self, small_observations):
        result = inference(small_observations, samples=[1, 2], verbose=False, seed=0)
        assert result.grid.T0 == 0.0
        assert result.grid.T == pytest.approx(2.8)
        assert result.N == 1
        np.testing.assert_array_equal(result.counts, [5])

    def test_n_bins_capped(self, rng):
        times = np.sort(rng.uniform(0.0, 1.0, size=400))
        result = inference(times, T=1.0, samples=[1, 2], verbose=False, seed=0)
        assert result.N == 50
        assert result.counts.sum() == 400

    def test_config_recorded(self, small_observations):
        result = inference(small_observations, title='Toy', T=3.0, N=3, n=2,
                           samples=[1, 2, 3], tau=0.5, verbose=False, seed=0)
        assert result.title == 'Toy'
        assert result.config.n == 2
        assert result.config.tau == 0.5
        assert result.config.beta_ind_mode is BetaIndMode.FIXED
        np.testing.assert_array_equal(result.counts, [1, 2, 2])


class TestValidation:
    """Invalid input fails before any iteration runs."""

    def test_unsorted(self):
        with pytest.raises(InvalidObservationError):
            inference([1.0, 0.5, 2.0], T=3.0, N=3, verbose=False)

    def test_observation_before_window(self, small_observations):
        with pytest.raises(InvalidObservationError):
            inference(small_observations, T0=1.0, T=3.0, N=3, verbose=False)

    def test_observation_after_window(self, small_observations):
        with pytest.raises(InvalidObservationError):
            inference(small_observations, T=2.0, N=3, verbose=False)

    def test_too_few_observations_for_default_grid(self):
        """Three events give a default of zero bins."""
        with pytest.raises(InvalidParameterError):
            inference([0.1, 0.2, 0.3], verbose=False)

    @pytest.mark.parametrize("kwargs", [
        {'N': 0},
        {'n': 0},
        {'tau': -1.0},
        {'alpha1': 0.0},
        {'samples': []},
        {'samples': [5, 3]},
    ])
    def test_invalid_parameters(self, small_observations, kwargs):
        params = {'T': 3.0, 'N': 3, 'verbose': False}
        params.update(kwargs)
        with pytest.raises(InvalidParameterError):
            inference(small_observations, **params)

    def test_summaryfile_needs_two_samples(self, small_observations, tmp_path):
        target = tmp_path / 'summary.csv'
        with pytest.raises(InvalidParameterError):
            inference(small_observations, T=3.0, N=3, samples=[1, 2],
                      summaryfile=target, verbose=False)
        assert not target.exists()

    def test_cancel_event(self, small_observations):
        class AlwaysSet:
            def is_set(self):
                return True

        with pytest.raises(RunCancelledError):
            inference(small_observations, T=3.0, N=3, verbose=False,
                      cancel_event=AlwaysSet())


class TestPosterior:
    """Statistical behaviour of full runs."""

    def test_single_bin_matches_conjugate_mean(self):
        """With N == 1, psi | data ~ Gamma(alpha_ind + H, beta_ind + T)."""
        times = np.linspace(0.05, 4.95, 50)
        result = inference(times, T=5.0, N=1, samples=range(1, 4001),
                           verbose=False, seed=11)
        summary = summarize_posterior(result)
        assert summary.mean[0] == pytest.approx(50.1 / 5.1, abs=0.15)

    def test_constant_rate_recovery(self, constant_rate_observations):
        times = constant_rate_observations
        result = inference(times, T=10.0, N=10, samples=range(1, 3001),
                           verbose=False, seed=5)
        summary = summarize_posterior(result)

        assert np.all(summary.mean > 0)
        assert np.mean(summary.mean) == pytest.approx(times.size / 10.0, rel=0.1)
        assert np.mean(summary.mean) == pytest.approx(10.0, rel=0.3)

    def test_aggregated_realizations(self):
        """n realizations of rate 4 pooled together still estimate rate 4."""
        gen = np.random.default_rng(21)
        times = simulate_poisson_process(4.0, 0.0, 10.0, n=5, rng=gen)
        result = inference(times, T=10.0, N=5, n=5, samples=range(1, 2001),
                           verbose=False, seed=2)
        summary = summarize_posterior(result)
        assert np.mean(summary.mean) == pytest.approx(4.0, rel=0.25)

    def test_empirical_bayes(self, constant_rate_observations):
        result = inference(constant_rate_observations, T=10.0, N=10,
                           samples=range(1, 501), empirical_bayes=True,
                           verbose=False, seed=3)
        assert result.config.beta_ind_mode is BetaIndMode.EMPIRICAL_BAYES
        assert np.unique(result.beta_ind_samples).size > 1
        np.testing.assert_allclose(result.beta_ind_samples,
                                   0.1 * 10 / result.psi_samples.sum(axis=1))

    def test_custom_alpha_prior(self, constant_rate_observations):
        prior = stats.uniform(0.0, 5.0)
        result = inference(constant_rate_observations, T=10.0, N=10,
                           samples=range(1, 301), prior_on_alpha=prior,
                           verbose=False, seed=3)
        assert np.all(result.alpha_samples < 5.0)

    def test_summaryfile(self, small_observations, tmp_path, capsys):
        target = tmp_path / 'out' / 'toy.csv'
        inference(small_observations, title='Toy', T=3.0, N=3,
                  samples=range(1, 201), summaryfile=target, seed=0)

        df = pd.read_csv(target)
        assert len(df) == 3
        np.testing.assert_array_equal(df['count'], [1, 2, 2])
        assert np.all(df['lower'] <= df['upper'])

        out = capsys.readouterr().out
        assert "[Inference] Toy" in out
        assert "Summary written" in out

    @pytest.mark.slow
    def test_credible_band_coverage(self):
        """95% bands cover a constant true rate in most bins."""
        covered, total = 0, 0
        for trial in range(20):
            gen = np.random.default_rng(1000 + trial)
            times = simulate_poisson_process(10.0, 0.0, 10.0, rng=gen)
            result = inference(times, T=10.0, N=5, samples=range(1, 2001),
                               verbose=False, seed=trial)
            summary = summarize_posterior(result)
            covered += int(np.sum((summary.lower <= 10.0) & (10.0 <= summary.upper)))
            total += 5

        assert covered / total >= 0.8


class TestRunChains:
    """Test independent chains."""

    def test_sequential_chains(self, small_observations):
        results = run_chains(small_observations, n_chains=3, seed=5, max_workers=1,
                             T=3.0, N=3, samples=range(1, 51))
        assert len(results) == 3
        assert all(r.n_samples == 50 for r in results)
        assert not np.array_equal(results[0].psi_samples, results[1].psi_samples)

    def test_reproducible(self, small_observations):
        kwargs = dict(n_chains=2, seed=8, max_workers=1, T=3.0, N=3, samples=range(1, 31))
        a = run_chains(small_observations, **kwargs)
        b = run_chains(small_observations, **kwargs)
        for ra, rb in zip(a, b):
            np.testing.assert_array_equal(ra.psi_samples, rb.psi_samples)

    @pytest.mark.parametrize("name", ['rng', 'cancel_event', 'summaryfile'])
    def test_rejected_kwargs(self, small_observations, name):
        with pytest.raises(InvalidParameterError):
            run_chains(small_observations, n_chains=2, max_workers=1,
                       T=3.0, N=3, **{name: None})

    def test_invalid_chain_count(self, small_observations):
        with pytest.raises(InvalidParameterError):
            run_chains(small_observations, n_chains=0, T=3.0, N=3)

    def test_invalid_observations(self):
        with pytest.raises(InvalidObservationError):
            run_chains([2.0, 1.0], n_chains=2, max_workers=1)

    @pytest.mark.slow
    def test_parallel_matches_sequential(self, small_observations):
        kwargs = dict(n_chains=2, seed=13, T=3.0, N=3, samples=range(1, 101))
        parallel = run_chains(small_observations, max_workers=2, **kwargs)
        sequential = run_chains(small_observations, max_workers=1, **kwargs)
        for rp, rs in zip(parallel, sequential):
            np.testing.assert_array_equal(rp.psi_samples, rs.psi_samples)
            np.testing.assert_array_equal(rp.alpha_samples, rs.alpha_samples)


if __name__ == '__main__':
    pytest.main([__file__, '-v', '--tb=short'])
