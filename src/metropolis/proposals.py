"""Proposal mechanisms for Metropolis-Hastings chains."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .typing import Array, Distribution


def _as_state(value) -> Array:
    return np.atleast_1d(np.asarray(value, dtype=np.float64))


@dataclass
class RandomWalkProposal:
    """Gaussian random walk ``x' = x + L z`` with ``z ~ N(0, I)``.

    ``scale`` is the per-coordinate standard deviation (scalar or vector).  When
    ``covariance`` is given it takes precedence and ``L`` is its Cholesky factor;
    ``scale`` then acts as a global multiplier.  The proposal is symmetric, so
    the sampler omits the Hastings correction.
    """

    scale: float | Array = 1.0
    covariance: Optional[Array] = None
    symmetric: bool = field(default=True, init=False)
    _chol: Optional[Array] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        scale = np.asarray(self.scale, dtype=np.float64)
        if np.any(scale <= 0.0) or not np.all(np.isfinite(scale)):
            raise ValueError("Proposal scale must be finite and strictly positive.")
        if self.covariance is not None:
            cov = np.atleast_2d(np.asarray(self.covariance, dtype=np.float64))
            if cov.shape[0] != cov.shape[1]:
                raise ValueError("Proposal covariance must be square.")
            try:
                self._chol = np.linalg.cholesky(cov)
            except np.linalg.LinAlgError as exc:
                raise ValueError("Proposal covariance must be positive definite.") from exc

    def propose(self, current: Array, rng: np.random.Generator) -> Array:
        z = rng.standard_normal(current.shape)
        if self._chol is not None:
            if self._chol.shape[0] != current.shape[0]:
                raise ValueError(
                    f"Proposal covariance has dimension {self._chol.shape[0]}, "
                    f"state has dimension {current.shape[0]}."
                )
            return current + np.asarray(self.scale) * (self._chol @ z)
        return current + np.asarray(self.scale) * z

    def log_density(self, from_state: Array, to_state: Array) -> float:
        # Normalising constants cancel in the Hastings ratio.
        diff = np.asarray(to_state, dtype=np.float64) - np.asarray(from_state, dtype=np.float64)
        if self._chol is not None:
            whitened = np.linalg.solve(self._chol, diff) / np.asarray(self.scale)
        else:
            whitened = diff / np.asarray(self.scale)
        return float(-0.5 * np.dot(whitened, whitened))

    def rescaled(self, factor: float) -> "RandomWalkProposal":
        """Return a copy with the global scale multiplied by ``factor``."""

        new = copy.copy(self)
        new.scale = np.asarray(self.scale, dtype=np.float64) * factor
        return new


@dataclass
class IndependenceProposal:
    """Draw candidates from a fixed distribution regardless of the current state.

    The proposal is asymmetric in general, so the sampler adds the correction
    ``log g(current) - log g(candidate)``.
    """

    distribution: Distribution
    symmetric: bool = field(default=False, init=False)

    def propose(self, current: Array, rng: np.random.Generator) -> Array:
        draw = _as_state(self.distribution.sample(rng, size=current.shape[0]))
        if draw.shape != current.shape:
            raise ValueError(
                f"Independence proposal produced shape {draw.shape}, expected {current.shape}."
            )
        return draw

    def log_density(self, from_state: Array, to_state: Array) -> float:
        return float(self.distribution.log_density(to_state))


@dataclass
class ScaleAdapter:
    """Robbins-Monro tuning of a random-walk scale toward a target acceptance.

    Only used during an explicit adaptation window; after it the proposal is
    frozen so the remaining chain is a valid fixed-kernel Metropolis chain.
    """

    target_acceptance: float = 0.234
    decay: float = 0.6
    log_factor: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 < self.target_acceptance < 1.0:
            raise ValueError("target_acceptance must lie in (0, 1).")
        if not 0.5 < self.decay <= 1.0:
            raise ValueError("decay must lie in (0.5, 1].")

    def update(self, iteration: int, acceptance_probability: float) -> float:
        gain = 1.0 / (iteration + 1) ** self.decay
        self.log_factor += gain * (acceptance_probability - self.target_acceptance)
        return math.exp(self.log_factor)


__all__ = ["RandomWalkProposal", "IndependenceProposal", "ScaleAdapter"]
