"""
Tests for the simulated annealing optimiser.

Tests cover:
- Determinism for a fixed seed
- Minimisation of smooth costs (fixed and adaptive candidate generation)
- Stopping statuses
- Error propagation from the cost function
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from porepath.common.config import AnnealingConfig
from porepath.common.errors import ConfigurationError
from porepath.optimization.annealing import (
    SimulatedAnnealing,
    OptimizationStatus,
    anneal,
)


# ============== Fixtures ==============

@pytest.fixture
def quadratic():
    """Bowl with minimum 1.0 at (0.5, -0.3)."""
    target = np.array([0.5, -0.3])

    def cost(x):
        return float(np.sum((x - target) ** 2)) + 1.0

    return cost, target


@pytest.fixture
def fast_config():
    return AnnealingConfig(
        seed=42,
        max_cooling_iter=2000,
        num_cost_samples=20,
        init_temp=0.1,
        cooling_factor=0.98,
        step_length_factor=0.1,
        conv_window=50,
    )


# ============== Result Tests ==============

class TestAnnealingResult:
    """Tests for best state tracking and bookkeeping."""

    def test_best_never_worse_than_start(self, quadratic, fast_config):
        cost, _ = quadratic
        start = np.array([2.0, 2.0])
        result = anneal(cost, start, fast_config)
        assert result.best_cost <= cost(start)

    def test_best_cost_matches_best_state(self, quadratic, fast_config):
        cost, _ = quadratic
        result = anneal(cost, np.zeros(2), fast_config)
        assert result.best_cost == pytest.approx(cost(result.best_state))

    def test_finds_quadratic_minimum(self, quadratic, fast_config):
        cost, target = quadratic
        result = anneal(cost, np.zeros(2), fast_config)
        np.testing.assert_allclose(result.best_state, target, atol=0.1)
        assert result.best_cost == pytest.approx(1.0, abs=0.02)

    def test_final_temperature(self, quadratic):
        cost, _ = quadratic
        config = AnnealingConfig(max_cooling_iter=5, conv_window=100, init_temp=1.0, cooling_factor=0.5)
        result = anneal(cost, np.zeros(2), config)
        assert result.num_iterations == 5
        assert result.final_temp == pytest.approx(0.5 ** 5)

    def test_state_dimension_preserved(self, fast_config):
        result = anneal(lambda x: float(np.sum(x ** 2)), np.ones(3), fast_config)
        assert result.best_state.shape == (3,)


# ============== Determinism Tests ==============

class TestDeterminism:
    """Identical inputs must give identical outputs."""

    def test_same_seed_same_result(self, quadratic, fast_config):
        cost, _ = quadratic
        a = anneal(cost, np.zeros(2), fast_config)
        b = anneal(cost, np.zeros(2), fast_config)
        np.testing.assert_array_equal(a.best_state, b.best_state)
        assert a.best_cost == b.best_cost
        assert a.num_iterations == b.num_iterations

    def test_repeated_anneal_on_instance(self, quadratic, fast_config):
        cost, _ = quadratic
        sa = SimulatedAnnealing(cost, np.zeros(2), fast_config)
        a = sa.anneal()
        b = sa.anneal()
        np.testing.assert_array_equal(a.best_state, b.best_state)

    def test_different_seed_different_path(self, quadratic):
        cost, _ = quadratic
        a = anneal(cost, np.zeros(2), AnnealingConfig(seed=1, max_cooling_iter=3))
        b = anneal(cost, np.zeros(2), AnnealingConfig(seed=2, max_cooling_iter=3))
        assert not np.array_equal(a.best_state, b.best_state)

    def test_no_global_random_state(self, quadratic, fast_config):
        cost, _ = quadratic
        a = anneal(cost, np.zeros(2), fast_config)
        np.random.seed(0)
        np.random.random(100)
        b = anneal(cost, np.zeros(2), fast_config)
        np.testing.assert_array_equal(a.best_state, b.best_state)


# ============== Status Tests ==============

class TestStatus:
    """Tests for convergence and iteration limit."""

    def test_constant_cost_converges(self):
        result = anneal(lambda x: 5.0, np.zeros(2), AnnealingConfig(conv_window=10))
        assert result.status == OptimizationStatus.CONVERGED
        assert result.converged
        assert result.num_iterations == 10
        assert result.best_cost == 5.0

    def test_zero_cost_converges(self):
        result = anneal(lambda x: 0.0, np.zeros(2), AnnealingConfig(conv_window=3))
        assert result.status == OptimizationStatus.CONVERGED
        assert result.num_iterations == 3

    def test_iteration_limit(self):
        config = AnnealingConfig(max_cooling_iter=2, conv_window=10)
        result = anneal(lambda x: float(np.sum(x ** 2)) + 1.0, np.ones(2), config)
        assert result.status == OptimizationStatus.MAX_ITERATIONS_REACHED
        assert not result.converged
        assert result.num_iterations == 2

    def test_temperature_underflow(self):
        calls = {"n": 0}

        def alternating(x):
            # every other call is a new best, the rest are worse than the current state
            calls["n"] += 1
            return -float(calls["n"]) if calls["n"] % 2 == 0 else 1.0e6

        config = AnnealingConfig(max_cooling_iter=1200, cooling_factor=0.5, num_cost_samples=2)
        result = anneal(alternating, np.zeros(2), config)
        assert result.status == OptimizationStatus.MAX_ITERATIONS_REACHED
        assert result.num_iterations == 1200
        assert result.final_temp == 0.0


# ============== Adaptive Candidate Generation Tests ==============

class TestAdaptiveCandidates:
    """Tests for per-dimension step adaptation."""

    def test_adaptive_finds_minimum(self, quadratic):
        cost, target = quadratic
        config = AnnealingConfig(
            seed=7,
            max_cooling_iter=2000,
            num_cost_samples=20,
            conv_window=50,
            use_adaptive_cand_gen=True,
        )
        result = anneal(cost, np.zeros(2), config)
        np.testing.assert_allclose(result.best_state, target, atol=0.1)

    def test_step_sizes_grow_on_high_acceptance(self):
        sa = SimulatedAnnealing(lambda x: 0.0, np.zeros(2))
        steps = sa._adapt_step_sizes(np.array([0.1, 0.1]), np.array([10, 5]), np.array([10, 10]))
        assert steps[0] > 0.1
        assert steps[1] == pytest.approx(0.1)

    def test_step_sizes_shrink_on_low_acceptance(self):
        sa = SimulatedAnnealing(lambda x: 0.0, np.zeros(2))
        steps = sa._adapt_step_sizes(np.array([0.1, 0.1]), np.array([0, 1]), np.array([10, 0]))
        assert steps[0] < 0.1
        assert steps[1] == pytest.approx(0.1)


# ============== Error Tests ==============

class TestErrors:
    """Tests for invalid input and failing costs."""

    def test_cost_exception_propagates(self):
        def failing(x):
            raise RuntimeError("cost failed")

        with pytest.raises(RuntimeError, match="cost failed"):
            anneal(failing, np.zeros(2))

    def test_empty_state_rejected(self):
        with pytest.raises(ConfigurationError):
            SimulatedAnnealing(lambda x: 0.0, np.zeros(0))

    @pytest.mark.parametrize("field,value", [
        ("cooling_factor", 0.0),
        ("cooling_factor", 1.5),
        ("init_temp", 0.0),
        ("max_cooling_iter", 0),
        ("num_cost_samples", 0),
        ("xi", -1.0),
    ])
    def test_invalid_config(self, field, value):
        with pytest.raises(ConfigurationError):
            AnnealingConfig(**{field: value})
