from __future__ import annotations

import math

import numpy as np
import pytest

from metropolis.distributions import HalfNormal, Normal, Uniform
from metropolis.errors import NonFiniteDensityError, SimulatorDivergenceError
from metropolis.posterior import GaussianLikelihood, Posterior


def test_log_density_is_prior_plus_likelihood():
    posterior = Posterior([Normal(0.0, 1.0), HalfNormal(2.0)], likelihood=lambda th: -3.0)
    theta = np.array([0.3, 1.2])
    expected = Normal(0.0, 1.0).log_density(0.3) + HalfNormal(2.0).log_density(1.2) - 3.0
    assert posterior(theta) == pytest.approx(expected)
    assert posterior.log_prior(theta) == pytest.approx(expected + 3.0)


def test_prior_outside_support_skips_likelihood():
    calls = []

    def likelihood(theta):
        calls.append(theta)
        return 0.0

    posterior = Posterior([Uniform(0.0, 1.0)], likelihood)
    assert posterior(np.array([-0.5])) == -math.inf
    assert calls == []


def test_divergent_forward_model_gives_zero_density():
    def likelihood(theta):
        raise SimulatorDivergenceError("blow-up")

    assert Posterior([Normal()], likelihood)(np.array([0.0])) == -math.inf


def test_nan_likelihood_is_fatal():
    posterior = Posterior([Normal()], likelihood=lambda th: float("nan"))
    with pytest.raises(NonFiniteDensityError):
        posterior(np.array([0.0]))


def test_shape_and_prior_validation():
    posterior = Posterior([Normal(), Normal()], names=["a", "b"])
    with pytest.raises(ValueError):
        posterior.log_prior(np.array([1.0, 2.0, 3.0]))
    with pytest.raises(ValueError):
        Posterior([Normal()], names=["a", "b"])
    with pytest.raises(TypeError):
        Posterior([object()])
    assert posterior.parameter_names == ("a", "b")
    assert posterior.as_dict(np.array([1.0, 2.0])) == {"a": 1.0, "b": 2.0}


def test_sample_prior_respects_support():
    posterior = Posterior([Uniform(2.0, 3.0), HalfNormal(1.0)])
    draw = posterior.sample_prior(np.random.default_rng(0))
    assert draw.shape == (2,)
    assert 2.0 <= draw[0] <= 3.0 and draw[1] >= 0.0


def test_gaussian_likelihood_fixed_noise():
    observed = np.array([1.0, 2.0, 3.0])
    lik = GaussianLikelihood(lambda th: th[0] * np.array([1.0, 2.0, 3.0]), observed, noise_std=0.5)
    assert lik(np.array([1.0])) == pytest.approx(Normal(0.0, 0.5).log_density(np.zeros(3)))
    assert lik(np.array([1.0])) > lik(np.array([1.2]))


def test_gaussian_likelihood_noise_from_parameters():
    observed = np.array([0.5, 0.5])
    lik = GaussianLikelihood(lambda th: np.full(2, th[0]), observed, noise_index=1)
    assert lik(np.array([0.0, 2.0])) == pytest.approx(Normal(0.0, 2.0).log_density(observed))

    posterior = Posterior([Normal(), HalfNormal(1.0)], lik)
    assert posterior(np.array([0.0, -1.0])) == -math.inf


def test_gaussian_likelihood_validation():
    with pytest.raises(ValueError):
        GaussianLikelihood(lambda th: th, np.zeros(2))
    with pytest.raises(ValueError):
        GaussianLikelihood(lambda th: th, np.zeros(2), noise_std=1.0, noise_index=0)
    lik = GaussianLikelihood(lambda th: np.zeros(3), np.zeros(2), noise_std=1.0)
    with pytest.raises(ValueError):
        lik(np.array([0.0]))
