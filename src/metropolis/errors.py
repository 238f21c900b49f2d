"""Exceptions raised while evaluating posteriors and running chains."""

from __future__ import annotations

from dataclasses import dataclass


class MetropolisError(RuntimeError):
    """Base class for sampler errors."""


class OutsideSupportError(MetropolisError):
    """Raised by an evaluator for a point with zero prior probability."""


class SimulatorDivergenceError(MetropolisError):
    """Raised when the forward model cannot produce an output."""


class NonFiniteDensityError(MetropolisError):
    """Raised when an in-support point evaluates to NaN or +inf."""


class InitialStateError(MetropolisError):
    """Raised when a chain is started from a point without finite density."""


@dataclass
class ChainFailure:
    """Per-chain error report collected by the ensemble runner."""

    chain_id: int
    error_type: str
    message: str
    cancelled: bool = False

    @classmethod
    def from_exception(cls, chain_id: int, exc: BaseException) -> "ChainFailure":
        return cls(chain_id=chain_id, error_type=type(exc).__name__, message=str(exc))


__all__ = [
    "MetropolisError",
    "OutsideSupportError",
    "SimulatorDivergenceError",
    "NonFiniteDensityError",
    "InitialStateError",
    "ChainFailure",
]
