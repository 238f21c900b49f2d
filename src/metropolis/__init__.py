"""Metropolis-Hastings sampling with independent, poolable chains."""

from .chain import Chain
from .distributions import Gamma, HalfNormal, InverseGamma, LogNormal, Normal, Uniform
from .ensemble import ChainResult, EnsembleResult, run_ensemble
from .errors import (
    ChainFailure,
    InitialStateError,
    MetropolisError,
    NonFiniteDensityError,
    OutsideSupportError,
    SimulatorDivergenceError,
)
from .posterior import GaussianLikelihood, Posterior
from .proposals import IndependenceProposal, RandomWalkProposal
from .sampler import MetropolisHastings, StepResult, acceptance_probability

__version__ = "0.1.0"

__all__ = [
    "Chain",
    "ChainFailure",
    "ChainResult",
    "EnsembleResult",
    "Gamma",
    "GaussianLikelihood",
    "HalfNormal",
    "IndependenceProposal",
    "InitialStateError",
    "InverseGamma",
    "LogNormal",
    "MetropolisError",
    "MetropolisHastings",
    "NonFiniteDensityError",
    "Normal",
    "OutsideSupportError",
    "Posterior",
    "RandomWalkProposal",
    "SimulatorDivergenceError",
    "StepResult",
    "Uniform",
    "acceptance_probability",
    "run_ensemble",
]
