"""Append-only chain storage with per-step bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .typing import Array

RECORD_MODES = ("all", "accepted")


@dataclass
class Chain:
    """Sequence of visited states of a single Metropolis-Hastings run.

    In ``"all"`` mode every step appends one entry, whether the candidate was
    accepted or the current state was repeated.  In ``"accepted"`` mode only
    distinct states are stored together with a repeat count; the initial state
    is the first entry and each rejection bumps the count of the last entry.
    Both modes expand to the same per-step view through :meth:`samples`.
    """

    initial_state: Array
    initial_log_density: float
    record: str = "all"
    chain_id: int = 0
    states: List[Array] = field(default_factory=list)
    log_densities: List[float] = field(default_factory=list)
    accepted: List[bool] = field(default_factory=list)
    counts: List[int] = field(default_factory=list)
    iterations: int = 0
    accepted_count: int = 0

    def __post_init__(self) -> None:
        if self.record not in RECORD_MODES:
            raise ValueError(f"record must be one of {RECORD_MODES}, received {self.record!r}.")
        if self.record == "accepted" and not self.states:
            self.states.append(self.initial_state)
            self.log_densities.append(float(self.initial_log_density))
            self.counts.append(0)

    @property
    def dim(self) -> int:
        return int(self.initial_state.shape[0])

    @property
    def current_state(self) -> Array:
        if self.record == "all" and not self.states:
            return self.initial_state
        return self.states[-1]

    @property
    def current_log_density(self) -> float:
        if self.record == "all" and not self.log_densities:
            return self.initial_log_density
        return self.log_densities[-1]

    def append(self, state: Array, log_density: float, accepted: bool) -> None:
        """Record the outcome of one step."""

        self.iterations += 1
        if accepted:
            self.accepted_count += 1
        if self.record == "all":
            self.states.append(state)
            self.log_densities.append(float(log_density))
            self.accepted.append(bool(accepted))
        elif accepted:
            self.states.append(state)
            self.log_densities.append(float(log_density))
            self.counts.append(1)
        else:
            self.counts[-1] += 1

    @property
    def acceptance_rate(self) -> float:
        if self.iterations == 0:
            return float("nan")
        return self.accepted_count / self.iterations

    def _expanded(self) -> tuple[Array, Array]:
        if self.record == "all":
            if not self.states:
                empty = np.empty((0, self.dim), dtype=np.float64)
                return empty, np.empty((0,), dtype=np.float64)
            return np.stack(self.states), np.asarray(self.log_densities, dtype=np.float64)
        # The initial entry only counts the rejections that happened before
        # the first acceptance, so it never contributes the starting point.
        stacked = np.stack(self.states)
        counts = np.asarray(self.counts, dtype=np.int64)
        log_densities = np.asarray(self.log_densities, dtype=np.float64)
        return np.repeat(stacked, counts, axis=0), np.repeat(log_densities, counts)

    def samples(self, burn_in: int = 0, thin: int = 1) -> Array:
        """Return the per-step states with shape ``(iterations - burn_in) // thin``."""

        if burn_in < 0:
            raise ValueError("burn_in must be non-negative.")
        if thin < 1:
            raise ValueError("thin must be at least 1.")
        states, _ = self._expanded()
        return states[burn_in::thin]

    def log_density_trace(self, burn_in: int = 0, thin: int = 1) -> Array:
        if burn_in < 0 or thin < 1:
            raise ValueError("burn_in must be non-negative and thin at least 1.")
        _, log_densities = self._expanded()
        return log_densities[burn_in::thin]

    def acceptance_flags(self) -> Optional[Array]:
        """Per-step acceptance flags; only available in ``"all"`` mode."""

        if self.record != "all":
            return None
        return np.asarray(self.accepted, dtype=bool)

    def __len__(self) -> int:
        return self.iterations


__all__ = ["Chain", "RECORD_MODES"]
