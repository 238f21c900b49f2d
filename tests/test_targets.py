from __future__ import annotations

import math

import numpy as np

from metropolis.config import ModelConfig
from metropolis.targets import LV_NAMES, build_target


def test_gaussian_target_from_options():
    target = build_target(ModelConfig(name="gaussian", options={"mean": 5.0, "std": 1.0, "dim": 2}))
    assert target.names == ("x_0", "x_1")
    np.testing.assert_array_equal(target.initial_state, [0.0, 0.0])
    assert target.log_density(np.array([5.0, 5.0])) > target.log_density(np.array([4.0, 5.0]))


def test_lotka_volterra_target_is_finite_at_start():
    target = build_target(ModelConfig(name="lotka_volterra", options={"n_times": 20}), seed=3)
    assert target.names == LV_NAMES
    assert math.isfinite(target.log_density(target.initial_state))
    assert target.log_density(np.array([1.5, 1.0, 3.0, 1.0])) > target.log_density(target.initial_state)
    assert target.log_density(np.array([-1.0, 1.0, 3.0, 1.0])) == -math.inf


def test_lotka_volterra_with_inferred_noise():
    target = build_target(ModelConfig(name="lotka_volterra", options={"infer_noise": True, "n_times": 20}))
    assert target.names[-1] == "sigma"
    assert target.initial_state.shape == (5,)
    assert math.isfinite(target.log_density(target.initial_state))
    assert target.log_density(np.array([1.5, 1.0, 3.0, 1.0, -0.2])) == -math.inf
