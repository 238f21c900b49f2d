"""ODE forward models used inside likelihoods.

The solver is :func:`scipy.integrate.solve_ivp`.  A failed integration (for
example a trajectory blowing up towards a singularity) raises
:class:`~metropolis.errors.SimulatorDivergenceError`, which the posterior and
the sampler treat as a zero-probability point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.integrate import solve_ivp

from ..errors import SimulatorDivergenceError
from ..typing import Array

RHS = Callable[..., Sequence[float]]


def lotka_volterra(t: float, u: Array, alpha: float, beta: float, gamma: float, delta: float) -> list:
    """Predator-prey dynamics; ``u = (prey, predator)``."""

    prey, predator = u
    return [
        (alpha - beta * predator) * prey,
        (delta * prey - gamma) * predator,
    ]


@dataclass
class ODEModel:
    """Integrate ``du/dt = rhs(t, u, *params)`` and report the solution at ``times``.

    If ``y0`` is ``None`` the last ``n_states`` entries of the parameter vector
    are used as initial conditions.  ``observed_states`` selects which state
    components are returned.
    """

    rhs: RHS
    times: Array
    y0: Optional[Array] = None
    n_states: Optional[int] = None
    t0: Optional[float] = None
    observed_states: Optional[Sequence[int]] = None
    method: str = "RK45"
    rtol: float = 1e-6
    atol: float = 1e-8

    def __post_init__(self) -> None:
        self.times = np.asarray(self.times, dtype=np.float64)
        if self.times.ndim != 1 or self.times.size == 0:
            raise ValueError("times must be a non-empty 1-D array.")
        if np.any(np.diff(self.times) <= 0.0):
            raise ValueError("times must be strictly increasing.")
        if self.y0 is not None:
            self.y0 = np.atleast_1d(np.asarray(self.y0, dtype=np.float64))
            if self.n_states is None:
                self.n_states = int(self.y0.size)
        if self.n_states is None:
            raise ValueError("n_states is required when y0 is taken from the parameters.")
        if self.t0 is None:
            self.t0 = float(self.times[0])
        if self.t0 > self.times[0]:
            raise ValueError("t0 must not be later than the first observation time.")

    def _split(self, params: Array) -> tuple[Array, Array]:
        params = np.atleast_1d(np.asarray(params, dtype=np.float64))
        if self.y0 is not None:
            return params, self.y0
        return params[: -self.n_states], params[-self.n_states :]

    def simulate(self, params: Array) -> Array:
        """Return the trajectory with shape ``(len(times), n_observed_states)``."""

        rhs_params, y0 = self._split(params)
        with np.errstate(over="ignore", invalid="ignore"):
            sol = solve_ivp(
                fun=self.rhs,
                t_span=(self.t0, float(self.times[-1])),
                y0=y0,
                t_eval=self.times,
                args=tuple(float(p) for p in rhs_params),
                method=self.method,
                rtol=self.rtol,
                atol=self.atol,
            )
        if sol.status != 0:
            raise SimulatorDivergenceError(f"ODE solver failed: {sol.message}")
        trajectory = sol.y.T
        if trajectory.shape[0] != self.times.size or not np.all(np.isfinite(trajectory)):
            raise SimulatorDivergenceError("ODE solution is incomplete or non-finite.")
        if self.observed_states is not None:
            trajectory = trajectory[:, list(self.observed_states)]
        return trajectory

    __call__ = simulate


def lotka_volterra_model(
    times: Array,
    y0: Sequence[float] = (1.0, 1.0),
    observed_states: Optional[Sequence[int]] = None,
    **solver_options,
) -> ODEModel:
    """Convenience constructor for the predator-prey model with parameters ``(alpha, beta, gamma, delta)``."""

    return ODEModel(
        rhs=lotka_volterra,
        times=times,
        y0=np.asarray(y0, dtype=np.float64),
        observed_states=observed_states,
        **solver_options,
    )


def simulate_observations(
    model: Callable[[Array], Array],
    params: Array,
    noise_std: float,
    rng: np.random.Generator,
) -> Array:
    """Forward-simulate ``params`` and add i.i.d. Gaussian measurement noise."""

    if not noise_std >= 0.0:
        raise ValueError("noise_std must be non-negative.")
    clean = np.asarray(model(params), dtype=np.float64)
    return clean + noise_std * rng.standard_normal(clean.shape)


__all__ = ["ODEModel", "lotka_volterra_model", "lotka_volterra", "simulate_observations"]
