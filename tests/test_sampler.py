"""Tests for the Metropolis-Hastings kernel and single-chain driver."""

from __future__ import annotations

import math

import numpy as np
import pytest

from metropolis.distributions import Normal
from metropolis.errors import (
    InitialStateError,
    NonFiniteDensityError,
    OutsideSupportError,
    SimulatorDivergenceError,
)
from metropolis.models.gaussian import GaussianTarget, HalfLineGaussianTarget
from metropolis.proposals import IndependenceProposal, RandomWalkProposal
from metropolis.sampler import MetropolisHastings, acceptance_probability


class FixedProposal:
    """Always proposes the same candidate."""

    symmetric = True

    def __init__(self, candidate):
        self.candidate = np.atleast_1d(np.asarray(candidate, dtype=float))

    def propose(self, current, rng):
        return self.candidate.copy()

    def log_density(self, from_state, to_state):
        return 0.0


def test_acceptance_probability_edges():
    assert acceptance_probability(0.0) == 1.0
    assert acceptance_probability(3.5) == 1.0
    assert acceptance_probability(-math.inf) == 0.0
    assert acceptance_probability(math.log(0.25)) == pytest.approx(0.25)


def test_uphill_and_level_moves_always_accepted():
    for seed in range(50):
        sampler = MetropolisHastings(lambda x: -abs(x[0] - 1.0), FixedProposal(1.0), np.random.default_rng(seed))
        result = sampler.step(np.array([0.0]), -1.0)
        assert result.accepted
        np.testing.assert_allclose(result.state, [1.0])
        assert result.log_density == 0.0

        level = MetropolisHastings(lambda x: 0.0, FixedProposal(2.0), np.random.default_rng(seed))
        assert level.step(np.array([0.0]), 0.0).accepted


def test_candidate_with_zero_density_always_rejected():
    current = np.array([0.5])
    current_ld = -0.125
    for seed in range(50):
        sampler = MetropolisHastings(lambda x: -math.inf, FixedProposal(3.0), np.random.default_rng(seed))
        result = sampler.step(current, current_ld)
        assert not result.accepted
        assert result.state is current
        assert result.log_density == current_ld


def test_outside_support_and_divergence_are_rejections():
    def raises_support(x):
        raise OutsideSupportError("negative rate")

    def raises_divergence(x):
        raise SimulatorDivergenceError("solver failed")

    current = np.array([1.0])
    for fn in (raises_support, raises_divergence):
        sampler = MetropolisHastings(fn, FixedProposal(-1.0), np.random.default_rng(0))
        result = sampler.step(current, 0.0)
        assert not result.accepted
        assert result.state is current

    sampler = MetropolisHastings(raises_divergence, FixedProposal(-1.0), np.random.default_rng(0))
    sampler.step(current, 0.0)
    sampler.step(current, 0.0)
    assert sampler.work.divergences == 2
    assert sampler.work.evaluations == 2


@pytest.mark.parametrize("bad", [math.nan, math.inf])
def test_non_finite_in_support_density_is_fatal(bad):
    sampler = MetropolisHastings(lambda x: bad, FixedProposal(1.0), np.random.default_rng(0))
    with pytest.raises(NonFiniteDensityError):
        sampler.step(np.array([0.0]), 0.0)


def test_run_rejects_initial_state_outside_support():
    sampler = MetropolisHastings(lambda x: -math.inf if x[0] < 0 else 0.0, RandomWalkProposal(0.1))
    with pytest.raises(InitialStateError):
        sampler.run(-1.0, 10)


def test_run_records_every_step():
    sampler = MetropolisHastings(GaussianTarget(), RandomWalkProposal(1.0), np.random.default_rng(1))
    chain = sampler.run(0.0, 250)
    assert len(chain) == 250
    assert chain.samples().shape == (250, 1)
    assert chain.acceptance_flags().sum() == chain.accepted_count
    assert 0.0 < chain.acceptance_rate < 1.0
    assert sampler.work.evaluations == 251


def test_accepted_record_mode_expands_to_same_trace():
    target = GaussianTarget(0.0, 2.0)
    full = MetropolisHastings(target, RandomWalkProposal(1.5), np.random.default_rng(3)).run([0.0, 0.0], 400)
    compact = MetropolisHastings(target, RandomWalkProposal(1.5), np.random.default_rng(3)).run(
        [0.0, 0.0], 400, record="accepted"
    )
    np.testing.assert_array_equal(full.samples(), compact.samples())
    np.testing.assert_array_equal(full.log_density_trace(), compact.log_density_trace())
    assert compact.accepted_count == full.accepted_count
    assert len(compact.states) == compact.accepted_count + 1


def test_normal_five_one_scenario():
    target = Normal(5.0, 1.0)
    sampler = MetropolisHastings(target.log_density, RandomWalkProposal(0.5), np.random.default_rng(12345))
    chain = sampler.run(0.0, 10_000)
    draws = chain.samples()[:, 0]
    assert abs(draws.mean() - 5.0) < 0.1
    assert abs(draws.std() - 1.0) < 0.1


def test_standard_normal_long_run_moments():
    sampler = MetropolisHastings(GaussianTarget(), RandomWalkProposal(2.4), np.random.default_rng(2))
    draws = sampler.run(0.0, 40_000).samples(burn_in=1_000)[:, 0]
    assert abs(draws.mean()) < 0.05
    assert abs(draws.var() - 1.0) < 0.08


def test_independence_proposal_matching_target_always_accepts():
    target = Normal(0.0, 1.0)
    sampler = MetropolisHastings(
        target.log_density, IndependenceProposal(Normal(0.0, 1.0)), np.random.default_rng(4)
    )
    chain = sampler.run(0.0, 500)
    assert chain.acceptance_rate == 1.0


def test_independence_proposal_uses_hastings_correction():
    target = Normal(1.0, 1.0)
    sampler = MetropolisHastings(
        target.log_density, IndependenceProposal(Normal(0.0, 2.0)), np.random.default_rng(5)
    )
    draws = sampler.run(0.0, 20_000).samples(burn_in=500)[:, 0]
    assert abs(draws.mean() - 1.0) < 0.05
    assert abs(draws.std() - 1.0) < 0.05


def test_scale_adaptation_grows_tiny_scale_then_freezes():
    sampler = MetropolisHastings(GaussianTarget(), RandomWalkProposal(0.01), np.random.default_rng(6))
    sampler.run(0.0, 1_000, adapt_until=500)
    frozen = float(np.asarray(sampler.proposal.scale))
    assert frozen > 0.1
    sampler.run(0.0, 100)
    assert float(np.asarray(sampler.proposal.scale)) == frozen
    sampler.reset_proposal()
    assert float(np.asarray(sampler.proposal.scale)) == pytest.approx(0.01)


def test_scale_adaptation_requires_random_walk():
    sampler = MetropolisHastings(GaussianTarget(), IndependenceProposal(Normal()))
    with pytest.raises(TypeError):
        sampler.run(0.0, 10, adapt_until=5)


def test_chain_keeps_its_own_copy_of_the_start():
    x0 = np.array([3.0])
    sampler = MetropolisHastings(GaussianTarget(3.0), FixedProposal(1_000.0), np.random.default_rng(8))
    for record in ("accepted", "all"):
        chain = sampler.run(x0, 5, record=record)
        x0[0] = 99.0
        np.testing.assert_array_equal(chain.samples()[:, 0], [3.0] * 5)
        np.testing.assert_array_equal(chain.initial_state, [3.0])
        x0[0] = 3.0


def test_points_outside_the_half_line_are_never_accepted():
    sampler = MetropolisHastings(HalfLineGaussianTarget(0.5, 1.0), RandomWalkProposal(1.5), np.random.default_rng(9))
    chain = sampler.run(1.0, 2_000)
    assert np.all(chain.samples() > 0.0)
    assert sampler.work.as_dict()["outside_support"] > 0
    assert 0.0 < chain.acceptance_rate < 1.0
