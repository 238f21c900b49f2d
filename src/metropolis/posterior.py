"""Unnormalised posterior densities assembled from priors and a likelihood."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

import numpy as np

from .distributions import Normal
from .errors import NonFiniteDensityError, OutsideSupportError, SimulatorDivergenceError
from .typing import Array, Distribution, ForwardModel


@dataclass
class GaussianLikelihood:
    """Independent Gaussian measurement noise around a forward-model output.

    The noise standard deviation is either fixed (``noise_std``) or read from
    the parameter vector at ``noise_index``; the forward model then receives the
    parameter vector with that entry removed.
    """

    forward_model: ForwardModel
    observed: Array
    noise_std: Optional[float] = None
    noise_index: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.noise_std is None) == (self.noise_index is None):
            raise ValueError("Provide exactly one of noise_std or noise_index.")
        if self.noise_std is not None and not self.noise_std > 0.0:
            raise ValueError("noise_std must be strictly positive.")
        self.observed = np.asarray(self.observed, dtype=np.float64)

    def _split(self, theta: Array) -> tuple[Array, float]:
        if self.noise_index is None:
            return theta, float(self.noise_std)
        sigma = float(theta[self.noise_index])
        return np.delete(theta, self.noise_index), sigma

    def __call__(self, theta: Array) -> float:
        params, sigma = self._split(np.asarray(theta, dtype=np.float64))
        if not sigma > 0.0:
            raise OutsideSupportError(f"Noise scale must be positive, received {sigma}.")
        predicted = np.asarray(self.forward_model(params), dtype=np.float64)
        if predicted.shape != self.observed.shape:
            raise ValueError(
                f"Forward model returned shape {predicted.shape}, observations have {self.observed.shape}."
            )
        residuals = self.observed - predicted
        return Normal(0.0, sigma).log_density(residuals)


@dataclass
class Posterior:
    """``log p(theta | data) = sum_i log prior_i(theta_i) + log likelihood(theta)``.

    ``priors`` has one distribution per coordinate of the parameter vector.  A
    coordinate outside its prior support short-circuits to ``-inf`` without
    calling the likelihood, so expensive or ill-defined simulations are never
    run there.
    """

    priors: Sequence[Distribution]
    likelihood: Optional[Callable[[Array], float]] = None
    names: Optional[Sequence[str]] = None
    _names: tuple = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.priors = tuple(self.priors)
        if not self.priors:
            raise ValueError("At least one prior is required.")
        for prior in self.priors:
            if not isinstance(prior, Distribution):
                raise TypeError(f"{prior!r} does not provide log_density and sample.")
        if self.names is None:
            self._names = tuple(f"theta_{i}" for i in range(len(self.priors)))
        else:
            if len(self.names) != len(self.priors):
                raise ValueError("names and priors must have the same length.")
            self._names = tuple(self.names)

    @property
    def dim(self) -> int:
        return len(self.priors)

    @property
    def parameter_names(self) -> tuple:
        return self._names

    def log_prior(self, theta: Array) -> float:
        theta = np.atleast_1d(np.asarray(theta, dtype=np.float64))
        if theta.shape != (self.dim,):
            raise ValueError(f"Expected a parameter vector of shape ({self.dim},), received {theta.shape}.")
        total = 0.0
        for prior, value in zip(self.priors, theta):
            lp = float(prior.log_density(value))
            if lp == -math.inf:
                return -math.inf
            total += lp
        return total

    def log_density(self, theta: Array) -> float:
        lp = self.log_prior(theta)
        if lp == -math.inf or self.likelihood is None:
            return lp
        try:
            ll = float(self.likelihood(np.atleast_1d(np.asarray(theta, dtype=np.float64))))
        except (OutsideSupportError, SimulatorDivergenceError):
            return -math.inf
        if math.isnan(ll):
            raise NonFiniteDensityError(f"Likelihood evaluated to NaN at {theta!r}.")
        return lp + ll

    __call__ = log_density

    def sample_prior(self, rng: np.random.Generator) -> Array:
        """Draw one parameter vector from the product of priors."""

        return np.asarray([float(np.squeeze(p.sample(rng))) for p in self.priors], dtype=np.float64)

    def as_dict(self, theta: Array) -> Dict[str, float]:
        return {name: float(value) for name, value in zip(self._names, np.atleast_1d(theta))}


__all__ = ["GaussianLikelihood", "Posterior"]
