"""Run independent Metropolis-Hastings chains concurrently and pool their draws.

Chains share only read-only configuration (the log density and a copy of the
proposal).  Each chain owns a random generator spawned from a common
:class:`numpy.random.SeedSequence`, so results are reproducible for a given seed
regardless of the executor or of scheduling order.  An exception inside one
chain is recorded as a :class:`~metropolis.errors.ChainFailure` and never stops
its siblings.
"""

from __future__ import annotations

import concurrent.futures as cf
import copy
import logging
import multiprocessing
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from .chain import Chain
from .errors import ChainFailure
from .rng import RNGManager
from .sampler import MetropolisHastings
from .typing import Array, LogDensityFn, Proposal
from .utils.logging import WorkUnitLogger
from .utils.timers import TimerRegistry

logger = logging.getLogger(__name__)

EXECUTORS = ("serial", "thread", "process")


@dataclass
class ChainTask:
    chain_id: int
    log_density: LogDensityFn
    proposal: Proposal
    initial_state: Array
    n_iterations: int
    rng: np.random.Generator
    record: str = "all"
    adapt_until: int = 0
    target_acceptance: float = 0.234


@dataclass
class ChainResult:
    chain_id: int
    chain: Optional[Chain] = None
    failure: Optional[ChainFailure] = None
    elapsed_sec: float = 0.0
    work: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.chain is not None and self.failure is None


@dataclass
class EnsembleResult:
    """Outcome of an ensemble run, ordered by chain id."""

    results: List[ChainResult]
    seed: int

    @property
    def chains(self) -> List[Chain]:
        return [r.chain for r in self.results if r.ok]

    @property
    def failures(self) -> List[ChainFailure]:
        return [r.failure for r in self.results if r.failure is not None]

    @property
    def cancelled(self) -> bool:
        return any(f.cancelled for f in self.failures)

    def pooled(self, burn_in: int = 0, thin: int = 1) -> Array:
        """Concatenate the post-processed draws of every successful chain."""

        chains = self.chains
        if not chains:
            raise ValueError("No chain completed successfully; nothing to pool.")
        return np.concatenate([c.samples(burn_in=burn_in, thin=thin) for c in chains], axis=0)

    def acceptance_rates(self) -> Dict[int, float]:
        return {c.chain_id: c.acceptance_rate for c in self.chains}


def run_chain(task: ChainTask) -> ChainResult:
    """Run one chain, converting any exception into a failure record."""

    work = WorkUnitLogger()
    timers = TimerRegistry()
    label = chain_timer_label(task.chain_id)
    sampler = MetropolisHastings(task.log_density, task.proposal, rng=task.rng, work=work)
    chain: Optional[Chain] = None
    failure: Optional[ChainFailure] = None
    with timers.time(label):
        try:
            chain = sampler.run(
                task.initial_state,
                task.n_iterations,
                record=task.record,
                chain_id=task.chain_id,
                adapt_until=task.adapt_until,
                target_acceptance=task.target_acceptance,
            )
        except Exception as exc:
            logger.warning("Chain %d failed: %s: %s", task.chain_id, type(exc).__name__, exc)
            failure = ChainFailure.from_exception(task.chain_id, exc)
    return ChainResult(
        chain_id=task.chain_id,
        chain=chain,
        failure=failure,
        elapsed_sec=timers.total(label),
        work=work.as_dict(),
    )


def chain_timer_label(chain_id: int) -> str:
    return f"chain_{chain_id}"


def broadcast_initial_states(initial_states: Any, n_chains: Optional[int] = None) -> Array:
    """Return a ``(n_chains, dim)`` matrix of starting points.

    A 2-D array-like holds one starting point per chain.  A scalar or 1-D input
    is a single starting point shared by all chains and needs ``n_chains``.
    Lists and arrays are read the same way.
    """

    if n_chains is not None and n_chains < 1:
        raise ValueError("n_chains must be at least 1.")
    arr = np.array(initial_states, dtype=np.float64)
    if arr.size == 0:
        raise ValueError("At least one initial state is required.")
    if arr.ndim <= 1:
        if n_chains is None:
            raise ValueError(
                "A single shared initial state needs n_chains; pass one row per chain otherwise."
            )
        return np.tile(np.atleast_1d(arr), (n_chains, 1))
    if arr.ndim != 2:
        raise ValueError(f"initial_states must be at most 2-D, received shape {arr.shape}.")
    if n_chains is not None and n_chains != arr.shape[0]:
        raise ValueError(f"Got {arr.shape[0]} initial states for {n_chains} chains.")
    return arr


def _make_executor(kind: str, max_workers: Optional[int]) -> cf.Executor:
    if kind == "thread":
        return cf.ThreadPoolExecutor(max_workers=max_workers)
    return cf.ProcessPoolExecutor(
        max_workers=max_workers, mp_context=multiprocessing.get_context("spawn")
    )


def _cancelled(chain_id: int) -> ChainResult:
    return ChainResult(
        chain_id=chain_id,
        failure=ChainFailure(chain_id, "Cancelled", "ensemble cancelled before completion", True),
    )


def run_ensemble(
    log_density: LogDensityFn,
    proposal: Proposal,
    initial_states: Any,
    n_iterations: int,
    n_chains: Optional[int] = None,
    seed: int = 0,
    executor: str = "serial",
    max_workers: Optional[int] = None,
    record: str = "all",
    adapt_until: int = 0,
    target_acceptance: float = 0.234,
    cancel_event: Optional[threading.Event] = None,
    poll_interval: float = 0.1,
) -> EnsembleResult:
    """Run ``n_chains`` independent chains and collect them in chain-id order.

    ``initial_states`` is read by :func:`broadcast_initial_states`: one row per
    chain, or a single starting point shared by ``n_chains`` chains.
    ``executor`` selects serial execution, a thread pool, or a process pool
    (``spawn`` start method, so the log density must be picklable).  Setting
    ``cancel_event`` stops launching and awaiting chains; chains that did not
    finish are reported as cancelled.
    """

    if executor not in EXECUTORS:
        raise ValueError(f"executor must be one of {EXECUTORS}, received {executor!r}.")
    if n_iterations < 0:
        raise ValueError("n_iterations must be non-negative.")
    states = broadcast_initial_states(initial_states, n_chains)
    rngs = RNGManager(seed).spawn(len(states))
    tasks = [
        ChainTask(
            chain_id=i,
            log_density=log_density,
            proposal=copy.deepcopy(proposal),
            initial_state=state.copy(),
            n_iterations=n_iterations,
            rng=rng,
            record=record,
            adapt_until=adapt_until,
            target_acceptance=target_acceptance,
        )
        for i, (state, rng) in enumerate(zip(states, rngs))
    ]
    logger.info(
        "Running %d chains x %d iterations (executor=%s, seed=%d)",
        len(tasks),
        n_iterations,
        executor,
        seed,
    )

    results: Dict[int, ChainResult] = {}
    if executor == "serial":
        for task in tasks:
            if cancel_event is not None and cancel_event.is_set():
                results[task.chain_id] = _cancelled(task.chain_id)
                continue
            results[task.chain_id] = run_chain(task)
    else:
        pool = _make_executor(executor, max_workers)
        futures = {pool.submit(run_chain, task): task.chain_id for task in tasks}
        pending = set(futures)
        cancelled = False
        try:
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                done, pending = cf.wait(pending, timeout=poll_interval, return_when=cf.FIRST_COMPLETED)
                for fut in done:
                    chain_id = futures[fut]
                    try:
                        results[chain_id] = fut.result()
                    except Exception as exc:
                        # Worker-level errors (e.g. an unpicklable log density).
                        logger.warning("Chain %d failed in executor: %s", chain_id, exc)
                        results[chain_id] = ChainResult(
                            chain_id=chain_id, failure=ChainFailure.from_exception(chain_id, exc)
                        )
        finally:
            pool.shutdown(wait=not cancelled, cancel_futures=True)
        for fut in pending:
            results[futures[fut]] = _cancelled(futures[fut])

    ordered = [results[task.chain_id] for task in tasks]
    n_ok = sum(r.ok for r in ordered)
    logger.info("Ensemble finished: %d/%d chains succeeded", n_ok, len(ordered))
    return EnsembleResult(results=ordered, seed=seed)


__all__ = [
    "ChainTask",
    "ChainResult",
    "EnsembleResult",
    "EXECUTORS",
    "broadcast_initial_states",
    "chain_timer_label",
    "run_chain",
    "run_ensemble",
]
