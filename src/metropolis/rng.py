"""Per-chain random sources for NumPy and JAX."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import jax
import numpy as np


@dataclass
class RNGManager:
    """Derive independent, reproducible random streams from one seed.

    NumPy generators come from :meth:`numpy.random.SeedSequence.spawn`, so each
    chain owns its stream and no generator is ever shared between workers.
    JAX keys are split from a key seeded with the same value.
    """

    seed: int
    seed_sequence: np.random.SeedSequence = field(init=False, repr=False)
    key: jax.Array = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.seed_sequence = np.random.SeedSequence(self.seed)
        self.key = jax.random.PRNGKey(self.seed)

    def spawn(self, count: int) -> List[np.random.Generator]:
        if count < 0:
            raise ValueError("count must be non-negative.")
        return [np.random.default_rng(child) for child in self.seed_sequence.spawn(count)]

    def split(self, count: int = 1) -> Tuple[jax.Array, ...]:
        keys = jax.random.split(self.key, count + 1)
        self.key = keys[0]
        return tuple(keys[1:])


__all__ = ["RNGManager"]
