"""Forward models and closed-form targets."""

from .gaussian import GaussianTarget, HalfLineGaussianTarget
from .ode import lotka_volterra_model, ODEModel, lotka_volterra, simulate_observations

__all__ = [
    "GaussianTarget",
    "HalfLineGaussianTarget",
    "ODEModel",
    "lotka_volterra_model",
    "lotka_volterra",
    "simulate_observations",
]
