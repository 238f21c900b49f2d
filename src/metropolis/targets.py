"""Named sampling targets that can be selected from a configuration file."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import ModelConfig
from .distributions import InverseGamma, Uniform
from .models.gaussian import GaussianTarget
from .models.ode import lotka_volterra_model, simulate_observations
from .posterior import GaussianLikelihood, Posterior
from .typing import Array, LogDensityFn

LV_NAMES = ("alpha", "beta", "gamma", "delta")
LV_TRUE_PARAMS = (1.5, 1.0, 3.0, 1.0)
LV_PRIOR_BOUNDS = ((0.5, 2.5), (0.0, 2.0), (1.5, 4.0), (0.0, 2.0))


@dataclass
class Target:
    log_density: LogDensityFn
    names: Tuple[str, ...]
    initial_state: Array


def _gaussian(options: dict, initial_state: Optional[Sequence[float]]) -> Target:
    mean = float(options.get("mean", 0.0))
    std = float(options.get("std", 1.0))
    dim = int(options.get("dim", 1))
    x0 = np.zeros(dim) if initial_state is None else np.asarray(initial_state, dtype=np.float64)
    return Target(GaussianTarget(mean, std), tuple(f"x_{i}" for i in range(dim)), x0)


def _lotka_volterra(options: dict, initial_state: Optional[Sequence[float]], seed: int) -> Target:
    true_params = np.asarray(options.get("true_params", LV_TRUE_PARAMS), dtype=np.float64)
    times = np.linspace(0.0, float(options.get("t_max", 10.0)), int(options.get("n_times", 50)))
    y0 = options.get("y0", (1.0, 1.0))
    noise_std = float(options.get("noise_std", 0.25))
    infer_noise = bool(options.get("infer_noise", False))

    model = lotka_volterra_model(times, y0=y0)
    observed = simulate_observations(model, true_params, noise_std, np.random.default_rng(seed))

    priors = [Uniform(lo, hi) for lo, hi in LV_PRIOR_BOUNDS]
    names = LV_NAMES
    if infer_noise:
        priors.append(InverseGamma(2.0, 3.0))
        names = names + ("sigma",)
        likelihood = GaussianLikelihood(model, observed, noise_index=len(LV_NAMES))
        default_x0 = (1.2, 0.9, 2.8, 0.9, 0.5)
    else:
        likelihood = GaussianLikelihood(model, observed, noise_std=noise_std)
        default_x0 = (1.2, 0.9, 2.8, 0.9)
    posterior = Posterior(priors, likelihood, names=names)
    x0 = np.asarray(default_x0 if initial_state is None else initial_state, dtype=np.float64)
    return Target(posterior, names, x0)


def build_target(cfg: ModelConfig, seed: int = 0) -> Target:
    """Build the target named by ``cfg.name``; synthetic data use ``seed``."""

    if cfg.name == "gaussian":
        return _gaussian(cfg.options, cfg.initial_state)
    if cfg.name == "lotka_volterra":
        return _lotka_volterra(cfg.options, cfg.initial_state, seed)
    raise ValueError(f"Unknown model {cfg.name!r}.")


__all__ = ["Target", "build_target", "LV_NAMES", "LV_TRUE_PARAMS"]
