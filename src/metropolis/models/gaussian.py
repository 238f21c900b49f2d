"""Closed-form targets for demos and sampler checks."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from ..typing import Array


@dataclass(frozen=True)
class GaussianTarget:
    """Isotropic Gaussian log density ``N(mean, std^2 I)`` up to a constant."""

    mean: float = 0.0
    std: float = 1.0

    def __post_init__(self) -> None:
        if not self.std > 0.0:
            raise ValueError("std must be strictly positive.")

    def __call__(self, x: Array) -> float:
        z = (np.asarray(x, dtype=np.float64) - self.mean) / self.std
        return float(-0.5 * np.dot(z.ravel(), z.ravel()) - z.size * math.log(self.std))


@dataclass(frozen=True)
class HalfLineGaussianTarget:
    """Gaussian restricted to ``x > 0``; negative points are outside the support."""

    mean: float = 1.0
    std: float = 1.0

    def __call__(self, x: Array) -> float:
        x = np.asarray(x, dtype=np.float64)
        if np.any(x <= 0.0):
            return -math.inf
        return GaussianTarget(self.mean, self.std)(x)


__all__ = ["GaussianTarget", "HalfLineGaussianTarget"]
