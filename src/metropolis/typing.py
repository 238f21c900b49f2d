"""Shared typing aliases for the :mod:`metropolis` package."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, runtime_checkable

import numpy as np

Array = np.ndarray
LogDensityFn = Callable[[Array], float]
ForwardModel = Callable[[Array], Array]


@runtime_checkable
class Distribution(Protocol):
    """Anything exposing a log density and a sampler is a distribution."""

    def log_density(self, x: Any) -> float:
        ...

    def sample(self, rng: np.random.Generator, size: Optional[int] = None) -> Any:
        ...


@runtime_checkable
class Proposal(Protocol):
    """Protocol for proposal mechanisms used by the sampler."""

    symmetric: bool

    def propose(self, current: Array, rng: np.random.Generator) -> Array:
        ...

    def log_density(self, from_state: Array, to_state: Array) -> float:
        ...


__all__ = ["Array", "LogDensityFn", "ForwardModel", "Distribution", "Proposal"]
