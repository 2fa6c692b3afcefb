"""
Unit tests for the Gamma Markov Chain prior and its conditionals
"""

import pytest
import numpy as np
import sys
import os
from scipy import stats
from scipy.integrate import quad

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

from poisson_gmc.prior import (
    GMCHyperparameters,
    default_alpha_prior,
    empirical_bayes_beta_ind,
    full_conditional_psi,
    independent_posterior_params,
    initial_psi,
    log_coupling_likelihood,
    log_posterior_ratio_alpha,
    psi_conditional_params,
    zeta_conditional_params,
)
from poisson_gmc.errors import InvalidParameterError


class TestHyperparameters:
    """Test hyperparameter defaults and validation."""

    def test_defaults(self):
        hyper = GMCHyperparameters()
        assert hyper.alpha1 == 0.1
        assert hyper.beta1 == 0.1
        assert hyper.alpha_ind == 0.1

    @pytest.mark.parametrize("kwargs", [
        {'alpha1': 0.0},
        {'beta1': -1.0},
        {'alpha_ind': np.inf},
        {'alpha1': np.nan},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidParameterError):
            GMCHyperparameters(**kwargs)

    def test_default_alpha_prior(self):
        """Exponential with mean 10."""
        prior = default_alpha_prior()
        assert prior.mean() == pytest.approx(10.0)
        assert prior.logpdf(1.0) == pytest.approx(-np.log(10.0) - 0.1)


class TestPsiConditional:
    """Test the Gamma full conditional of each coefficient."""

    def setup_method(self):
        self.counts = np.array([3, 0, 2])
        self.widths = np.ones(3)
        self.zeta = np.array([2.0, 4.0])
        self.alpha = 2.0
        self.hyper = GMCHyperparameters(alpha1=0.5, beta1=0.25)

    def test_known_values(self):
        """Anchor, interior and last bin against hand-computed values."""
        expected = [(5.5, 2.25), (4.0, 2.5), (4.0, 1.5)]
        for k, (shape, rate) in enumerate(expected):
            got = full_conditional_psi(k, self.counts, self.widths, self.zeta,
                                       self.alpha, self.hyper, beta_ind=0.1)
            assert got == pytest.approx((shape, rate))

    def test_vectorized_matches_per_bin(self, rng):
        """psi_conditional_params agrees with full_conditional_psi bin by bin."""
        for N in (2, 3, 7):
            counts = rng.integers(0, 10, size=N)
            widths = rng.uniform(0.1, 2.0, size=N)
            zeta = rng.uniform(0.5, 3.0, size=N - 1)
            alpha = float(rng.uniform(0.1, 5.0))

            shape, rate = psi_conditional_params(counts, widths, zeta, alpha,
                                                 self.hyper, 0.1, n=2)

            for k in range(N):
                s, r = full_conditional_psi(k, counts, widths, zeta, alpha,
                                            self.hyper, 0.1, n=2)
                assert shape[k] == pytest.approx(s)
                assert rate[k] == pytest.approx(r)

    def test_exposure_scales_with_n(self):
        """n realizations multiply the exposure term only."""
        _, rate1 = psi_conditional_params(self.counts, self.widths, self.zeta,
                                          self.alpha, self.hyper, 0.1, n=1)
        _, rate3 = psi_conditional_params(self.counts, self.widths, self.zeta,
                                          self.alpha, self.hyper, 0.1, n=3)
        np.testing.assert_allclose(rate3 - rate1, 2.0 * self.widths)

    def test_single_bin_uses_independent_baseline(self):
        """With N == 1 the coefficient gets Gamma(alpha_ind + H, beta_ind + n w)."""
        hyper = GMCHyperparameters(alpha_ind=0.1)
        got = full_conditional_psi(0, np.array([7]), np.array([2.0]), np.array([]),
                                   5.0, hyper, beta_ind=0.5, n=3)
        assert got == pytest.approx((7.1, 6.5))

        shape, rate = psi_conditional_params(np.array([7]), np.array([2.0]), np.array([]),
                                             5.0, hyper, beta_ind=0.5, n=3)
        np.testing.assert_allclose(shape, [7.1])
        np.testing.assert_allclose(rate, [6.5])

    def test_inputs_not_modified(self):
        counts = self.counts.astype(float)
        widths = self.widths.copy()
        psi_conditional_params(counts, widths, self.zeta, self.alpha, self.hyper, 0.1)
        np.testing.assert_array_equal(counts, [3.0, 0.0, 2.0])
        np.testing.assert_array_equal(widths, [1.0, 1.0, 1.0])


class TestZetaConditional:
    """Test the inverse-Gamma full conditional of the latents."""

    def test_known_values(self):
        shape, scale = zeta_conditional_params(np.array([1.0, 3.0]), 2.0)
        np.testing.assert_allclose(shape, [4.0])
        np.testing.assert_allclose(scale, [8.0])

    def test_length(self):
        shape, scale = zeta_conditional_params(np.ones(6), 0.5)
        assert shape.shape == (5,)
        assert scale.shape == (5,)
        np.testing.assert_allclose(scale, 1.0)


class TestAlphaMetropolis:
    """Test the marginal coupling likelihood and acceptance ratio."""

    def test_coupling_matches_beta_prime(self):
        """psi[j+1] / psi[j] is BetaPrime(alpha, alpha) given psi[j]."""
        psi = np.array([1.3, 0.7])
        for a in (0.3, 1.0, 4.5):
            expected = stats.betaprime.logpdf(psi[1] / psi[0], a, a) - np.log(psi[0])
            assert log_coupling_likelihood(a, psi) == pytest.approx(expected)

    def test_coupling_integrates_out_zeta(self):
        """The closed form equals the zeta-integral of the two-stage chain."""
        a, p0, p1 = 2.0, 1.0, 1.5

        def integrand(z):
            return (stats.invgamma.pdf(z, a, scale=a * p0)
                    * stats.gamma.pdf(p1, a, scale=z / a))

        value, _ = quad(integrand, 0.0, np.inf)
        assert log_coupling_likelihood(a, np.array([p0, p1])) == pytest.approx(
            np.log(value), rel=1e-6)

    def test_coupling_sums_over_links(self):
        psi = np.array([1.0, 2.0, 0.5, 0.8])
        total = sum(log_coupling_likelihood(1.7, psi[j:j + 2]) for j in range(3))
        assert log_coupling_likelihood(1.7, psi) == pytest.approx(total)

    def test_single_bin_coupling_is_zero(self):
        assert log_coupling_likelihood(3.0, np.array([2.0])) == 0.0

    def test_equal_alphas_give_zero(self):
        psi = np.array([1.0, 2.0, 3.0])
        assert log_posterior_ratio_alpha(1.5, 1.5, psi) == pytest.approx(0.0)

    def test_single_bin_ratio(self):
        """Only prior and Jacobian remain when N == 1."""
        ratio = log_posterior_ratio_alpha(2.0, 1.0, np.array([4.0]))
        assert ratio == pytest.approx(-0.1 + np.log(2.0))

    def test_custom_prior_outside_support(self):
        """A proposal outside the prior support is never accepted."""
        prior = stats.uniform(0.0, 5.0)
        ratio = log_posterior_ratio_alpha(6.0, 1.0, np.array([1.0, 2.0]), prior)
        assert ratio == -np.inf

    def test_smooth_psi_favours_large_alpha(self):
        """Nearly equal coefficients make strong coupling more likely."""
        psi = np.full(20, 3.0) + np.linspace(0.0, 0.01, 20)
        assert log_posterior_ratio_alpha(50.0, 0.5, psi) > 0.0


class TestBaselineAndEmpiricalBayes:
    """Test independent-baseline helpers."""

    def test_empirical_bayes(self):
        assert empirical_bayes_beta_ind(np.array([1.0, 2.0, 3.0]), 0.3) == pytest.approx(0.15)

    def test_independent_posterior(self):
        shape, rate = independent_posterior_params(np.array([3, 0]), np.array([1.0, 0.5]),
                                                   0.1, 0.2, n=2)
        np.testing.assert_allclose(shape, [3.1, 0.1])
        np.testing.assert_allclose(rate, [2.2, 1.2])

    def test_initial_psi(self):
        """Start at the independent-baseline posterior means."""
        psi = initial_psi(np.array([1, 2, 2]), np.ones(3), 0.1, 0.1)
        np.testing.assert_allclose(psi, [1.1 / 1.1, 2.1 / 1.1, 2.1 / 1.1])
        assert np.all(psi > 0)

    def test_initial_psi_positive_for_empty_bins(self):
        psi = initial_psi(np.zeros(4), np.ones(4), 0.1, 0.1)
        assert np.all(psi > 0)


if __name__ == '__main__':
    pytest.main([__file__, '-v', '--tb=short'])
