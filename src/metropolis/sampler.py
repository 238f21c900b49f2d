"""Metropolis-Hastings transition kernel and single-chain driver.

Each step draws a candidate from the proposal, evaluates the (unnormalised)
log posterior once, and accepts with probability ``min(1, exp(delta))`` where
``delta`` is the log ratio of target densities plus, for asymmetric proposals,
the Hastings correction ``log g(x | x') - log g(x' | x)``.

Evaluations that fall outside the prior support, or whose forward simulation
diverges, are given log density ``-inf`` and are therefore always rejected.
NaN or ``+inf`` from an in-support point is a modelling error and raises
:class:`~metropolis.errors.NonFiniteDensityError`.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import NamedTuple, Optional

import numpy as np

from .chain import Chain
from .errors import (
    InitialStateError,
    NonFiniteDensityError,
    OutsideSupportError,
    SimulatorDivergenceError,
)
from .proposals import RandomWalkProposal, ScaleAdapter
from .typing import Array, LogDensityFn, Proposal
from .utils.logging import WorkUnitLogger

logger = logging.getLogger(__name__)


class ChainPhase(enum.Enum):
    PROPOSING = "proposing"
    DECIDING = "deciding"


class StepResult(NamedTuple):
    state: Array
    log_density: float
    accepted: bool


def as_state(value) -> Array:
    """Promote a scalar or sequence to a 1-D ``float64`` parameter vector."""

    state = np.atleast_1d(np.asarray(value, dtype=np.float64))
    if state.ndim != 1:
        raise ValueError(f"Parameter vectors must be 1-D, received shape {state.shape}.")
    return state


def acceptance_probability(log_ratio: float) -> float:
    """``min(1, exp(log_ratio))`` without overflow; ``-inf`` maps to exactly 0."""

    if log_ratio >= 0.0:
        return 1.0
    return math.exp(log_ratio)


class MetropolisHastings:
    """Single-chain Metropolis-Hastings sampler.

    Parameters
    ----------
    log_density:
        Deterministic map from a parameter vector to its log posterior density.
        It may return ``-inf`` or raise :class:`OutsideSupportError` /
        :class:`SimulatorDivergenceError` for points that must be rejected.
    proposal:
        Object with ``propose(current, rng)``, ``log_density(from, to)`` and a
        ``symmetric`` flag.
    rng:
        The chain's own random source.  Never shared between chains.
    """

    def __init__(
        self,
        log_density: LogDensityFn,
        proposal: Proposal,
        rng: Optional[np.random.Generator] = None,
        work: Optional[WorkUnitLogger] = None,
    ) -> None:
        self.log_density = log_density
        self.proposal = proposal
        self.initial_proposal = proposal
        self.rng = rng if rng is not None else np.random.default_rng()
        self.work = work if work is not None else WorkUnitLogger()
        self.phase = ChainPhase.PROPOSING
        self.last_acceptance_probability = float("nan")

    def reset_proposal(self) -> None:
        """Discard any scale tuned by a previous adaptive ``run``."""

        self.proposal = self.initial_proposal

    def evaluate(self, state: Array) -> float:
        """Evaluate the target, mapping rejection signals to ``-inf``."""

        self.work.incr(evaluations=1)
        try:
            value = float(self.log_density(state))
        except OutsideSupportError:
            self.work.incr(outside_support=1)
            logger.debug("Candidate %s outside support", state)
            return -math.inf
        except SimulatorDivergenceError as exc:
            self.work.incr(divergences=1)
            logger.debug("Forward model diverged at %s: %s", state, exc)
            return -math.inf
        if math.isnan(value) or value == math.inf:
            raise NonFiniteDensityError(f"Log density evaluated to {value} at {state!r}.")
        if value == -math.inf:
            self.work.incr(outside_support=1)
        return value

    def log_ratio(
        self,
        current_state: Array,
        current_log_density: float,
        candidate: Array,
        candidate_log_density: float,
    ) -> float:
        delta = candidate_log_density - current_log_density
        if not self.proposal.symmetric and delta != -math.inf:
            delta += self.proposal.log_density(candidate, current_state)
            delta -= self.proposal.log_density(current_state, candidate)
        return delta

    def step(self, current_state: Array, current_log_density: float) -> StepResult:
        """Perform one propose/accept-reject transition."""

        self.phase = ChainPhase.PROPOSING
        candidate = np.asarray(self.proposal.propose(current_state, self.rng), dtype=np.float64)
        candidate_log_density = self.evaluate(candidate)

        self.phase = ChainPhase.DECIDING
        delta = self.log_ratio(current_state, current_log_density, candidate, candidate_log_density)
        accept_prob = acceptance_probability(delta)
        self.last_acceptance_probability = accept_prob
        self.phase = ChainPhase.PROPOSING

        if accept_prob >= 1.0 or self.rng.random() < accept_prob:
            return StepResult(candidate, candidate_log_density, True)
        return StepResult(current_state, current_log_density, False)

    def run(
        self,
        initial_state,
        n_iterations: int,
        record: str = "all",
        chain_id: int = 0,
        adapt_until: int = 0,
        target_acceptance: float = 0.234,
    ) -> Chain:
        """Run exactly ``n_iterations`` steps from ``initial_state``.

        With ``adapt_until > 0`` the random-walk scale is tuned during the first
        ``adapt_until`` iterations and frozen afterwards.  The tuned proposal
        stays on the sampler, so a later ``run`` starts from it; call
        :meth:`reset_proposal` to go back to the proposal given at construction.
        The chain keeps its own copy of ``initial_state``.
        """

        if n_iterations < 0:
            raise ValueError("n_iterations must be non-negative.")
        if adapt_until < 0:
            raise ValueError("adapt_until must be non-negative.")

        state = as_state(initial_state).copy()
        log_density = self.evaluate(state)
        if not math.isfinite(log_density):
            raise InitialStateError(
                f"Initial state {state!r} has log density {log_density}; start inside the support."
            )

        adapter: Optional[ScaleAdapter] = None
        base_proposal = self.proposal
        if adapt_until > 0:
            if not isinstance(base_proposal, RandomWalkProposal):
                raise TypeError("Scale adaptation requires a RandomWalkProposal.")
            adapter = ScaleAdapter(target_acceptance=target_acceptance)

        chain = Chain(
            initial_state=state,
            initial_log_density=log_density,
            record=record,
            chain_id=chain_id,
        )
        logger.debug("Chain %d starting at %s (log density %.4f)", chain_id, state, log_density)

        for i in range(n_iterations):
            state, log_density, accepted = self.step(state, log_density)
            chain.append(state, log_density, accepted)
            if adapter is not None and i < adapt_until:
                factor = adapter.update(i, self.last_acceptance_probability)
                self.proposal = base_proposal.rescaled(factor)
                if i == adapt_until - 1:
                    logger.info("Chain %d: proposal scale frozen at x%.4f", chain_id, factor)

        logger.debug(
            "Chain %d finished %d iterations, acceptance rate %.3f",
            chain_id,
            n_iterations,
            chain.acceptance_rate,
        )
        return chain


__all__ = [
    "ChainPhase",
    "StepResult",
    "MetropolisHastings",
    "acceptance_probability",
    "as_state",
]
