"""Probability distributions used as priors and measurement-noise models.

Every class here satisfies :class:`metropolis.typing.Distribution`: it exposes
``log_density`` and ``sample``.  The sampler and the posterior never inspect
concrete types, so user-defined objects with the same two methods can be mixed
freely with these.

The implementations delegate to frozen :mod:`scipy.stats` distributions.  Array
arguments to ``log_density`` are treated as independent draws and their
log-densities are summed; points outside the support give ``-inf``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
from scipy import stats


@dataclass
class ScipyDistribution:
    """Base class wrapping a frozen ``scipy.stats`` distribution."""

    _frozen: Any = field(init=False, repr=False, compare=False)

    def _build(self) -> Any:
        raise NotImplementedError

    def __post_init__(self) -> None:
        self._frozen = self._build()

    def log_density(self, x: Any) -> float:
        values = np.asarray(x, dtype=float)
        return float(np.sum(self._frozen.logpdf(values)))

    def sample(self, rng: np.random.Generator, size: Optional[int] = None) -> Any:
        return self._frozen.rvs(size=size, random_state=rng)

    def in_support(self, x: Any) -> bool:
        return bool(np.isfinite(self.log_density(x)))

    @property
    def mean(self) -> float:
        return float(self._frozen.mean())

    @property
    def std(self) -> float:
        return float(self._frozen.std())


def _require_positive(name: str, value: float) -> None:
    if not value > 0.0:
        raise ValueError(f"{name} must be strictly positive, received {value!r}.")


@dataclass
class Normal(ScipyDistribution):
    loc: float = 0.0
    scale: float = 1.0

    def _build(self) -> Any:
        _require_positive("scale", self.scale)
        return stats.norm(loc=self.loc, scale=self.scale)


@dataclass
class HalfNormal(ScipyDistribution):
    scale: float = 1.0

    def _build(self) -> Any:
        _require_positive("scale", self.scale)
        return stats.halfnorm(scale=self.scale)


@dataclass
class Uniform(ScipyDistribution):
    low: float = 0.0
    high: float = 1.0

    def _build(self) -> Any:
        if not self.low < self.high:
            raise ValueError("Lower bound must be strictly less than upper bound.")
        return stats.uniform(loc=self.low, scale=self.high - self.low)


@dataclass
class LogNormal(ScipyDistribution):
    """Log-normal with ``log(X) ~ Normal(meanlog, sdlog)``."""

    meanlog: float = 0.0
    sdlog: float = 1.0

    def _build(self) -> Any:
        _require_positive("sdlog", self.sdlog)
        return stats.lognorm(s=self.sdlog, scale=np.exp(self.meanlog))


@dataclass
class Gamma(ScipyDistribution):
    """Gamma in the shape/rate parameterisation."""

    shape: float = 1.0
    rate: float = 1.0

    def _build(self) -> Any:
        _require_positive("shape", self.shape)
        _require_positive("rate", self.rate)
        return stats.gamma(a=self.shape, scale=1.0 / self.rate)


@dataclass
class InverseGamma(ScipyDistribution):
    shape: float = 1.0
    scale: float = 1.0

    def _build(self) -> Any:
        _require_positive("shape", self.shape)
        _require_positive("scale", self.scale)
        return stats.invgamma(a=self.shape, scale=self.scale)


__all__ = [
    "ScipyDistribution",
    "Normal",
    "HalfNormal",
    "Uniform",
    "LogNormal",
    "Gamma",
    "InverseGamma",
]
