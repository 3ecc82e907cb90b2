"""
Simulated Annealing Module

Domain-agnostic stochastic minimisation of a scalar cost over R^D.

Algorithm:
- At each temperature stage draw num_cost_samples candidates around the
  current state
- Accept a candidate if it lowers the cost, otherwise with probability
  exp(-(c_cand - c_crnt) / (xi * T))
- Remember the best state seen, whether or not it was accepted
- Cool geometrically, T <- cooling_factor * T
- Stop when the best cost stagnates over conv_window stages (CONVERGED) or
  after max_cooling_iter stages (MAX_ITERATIONS_REACHED)

Adaptive candidate generation (Corana et al. 1987): each candidate perturbs a
single coordinate, and per-coordinate step sizes grow when more than 60% of
moves along that coordinate were accepted during a stage and shrink below 40%.

Every run draws from its own numpy Generator seeded from the config, so two
runs with identical inputs give bit-identical results.
"""

import logging
from enum import Enum
from typing import Callable, Optional
from dataclasses import dataclass

import numpy as np

from ..common.config import AnnealingConfig
from ..common.errors import ConfigurationError

logger = logging.getLogger(__name__)

CostFunction = Callable[[np.ndarray], float]

# Corana acceptance band and step adaptation strength
ACCEPT_RATIO_HIGH = 0.6
ACCEPT_RATIO_LOW = 0.4
STEP_ADAPT_FACTOR = 2.0


class OptimizationStatus(Enum):
    """Why an optimization run stopped. Neither value is an error."""
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"


@dataclass
class AnnealingResult:
    """Best state/cost pair of one annealing run."""
    best_state: np.ndarray
    best_cost: float
    status: OptimizationStatus
    num_iterations: int  # Temperature stages performed
    num_accepted: int
    final_temp: float

    @property
    def converged(self) -> bool:
        return self.status == OptimizationStatus.CONVERGED


class SimulatedAnnealing:
    """
    Minimises cost_function starting from init_state.

    The instance holds only configuration; all run state lives inside
    anneal(), so calling anneal() twice repeats the same run.
    """

    def __init__(
        self,
        cost_function: CostFunction,
        init_state: np.ndarray,
        config: Optional[AnnealingConfig] = None
    ):
        """
        Initialize annealing run.

        Args:
            cost_function: Maps a state vector of shape (D,) to a float
            init_state: Starting state, fixes the dimension D
            config: Annealing parameters (defaults if None)
        """
        self.cost_function = cost_function
        self.init_state = np.array(init_state, dtype=np.float64).reshape(-1)
        if self.init_state.size == 0:
            raise ConfigurationError("Optimization state must have at least one dimension")
        self.config = config if config is not None else AnnealingConfig()

    @property
    def dim(self) -> int:
        return self.init_state.size

    def anneal(self) -> AnnealingResult:
        """
        Perform the annealing run.

        Returns:
            AnnealingResult with the best state and cost seen during the run
        """
        cfg = self.config
        rng = np.random.default_rng(cfg.seed)

        crnt_state = self.init_state.copy()
        crnt_cost = float(self.cost_function(crnt_state))
        best_state = crnt_state.copy()
        best_cost = crnt_cost

        step_sizes = np.full(self.dim, cfg.step_length_factor)
        temp = cfg.init_temp
        best_history = [best_cost]
        num_accepted = 0
        status = OptimizationStatus.MAX_ITERATIONS_REACHED
        stage = 0

        for stage in range(1, cfg.max_cooling_iter + 1):
            trials = np.zeros(self.dim, dtype=np.int64)
            accepts = np.zeros(self.dim, dtype=np.int64)

            for sample in range(cfg.num_cost_samples):
                if cfg.use_adaptive_cand_gen:
                    d = sample % self.dim
                    cand_state = crnt_state.copy()
                    cand_state[d] += step_sizes[d] * rng.uniform(-1.0, 1.0)
                    trials[d] += 1
                else:
                    d = None
                    cand_state = crnt_state + step_sizes * rng.uniform(-1.0, 1.0, self.dim)

                cand_cost = float(self.cost_function(cand_state))

                if self._accept(cand_cost, crnt_cost, temp, rng):
                    crnt_state = cand_state
                    crnt_cost = cand_cost
                    num_accepted += 1
                    if d is not None:
                        accepts[d] += 1

                if cand_cost < best_cost:
                    best_state = cand_state.copy()
                    best_cost = cand_cost

            if cfg.use_adaptive_cand_gen:
                step_sizes = self._adapt_step_sizes(step_sizes, accepts, trials)

            temp *= cfg.cooling_factor
            best_history.append(best_cost)

            logger.debug(
                f"SA stage {stage}: T={temp:.3e}, crnt={crnt_cost:.6f}, best={best_cost:.6f}"
            )

            if self._has_converged(best_history):
                status = OptimizationStatus.CONVERGED
                break

        logger.debug(
            f"SA finished after {stage} stages ({status.value}), best cost {best_cost:.6f}"
        )

        return AnnealingResult(
            best_state=best_state,
            best_cost=best_cost,
            status=status,
            num_iterations=stage,
            num_accepted=num_accepted,
            final_temp=temp,
        )

    def _accept(
        self,
        cand_cost: float,
        crnt_cost: float,
        temp: float,
        rng: np.random.Generator
    ) -> bool:
        """Metropolis criterion."""
        if cand_cost < crnt_cost:
            return True
        # temperature underflows to zero after long geometric cooling
        if temp <= 0.0:
            return False
        acc_prob = np.exp(-(cand_cost - crnt_cost) / (self.config.xi * temp))
        return bool(rng.random() < acc_prob)

    def _adapt_step_sizes(
        self,
        step_sizes: np.ndarray,
        accepts: np.ndarray,
        trials: np.ndarray
    ) -> np.ndarray:
        """Grow or shrink step sizes by per-coordinate acceptance ratio."""
        new_sizes = step_sizes.copy()
        for d in range(self.dim):
            if trials[d] == 0:
                continue
            ratio = accepts[d] / trials[d]
            if ratio > ACCEPT_RATIO_HIGH:
                new_sizes[d] *= 1.0 + STEP_ADAPT_FACTOR * (ratio - ACCEPT_RATIO_HIGH) / ACCEPT_RATIO_LOW
            elif ratio < ACCEPT_RATIO_LOW:
                new_sizes[d] /= 1.0 + STEP_ADAPT_FACTOR * (ACCEPT_RATIO_LOW - ratio) / ACCEPT_RATIO_LOW
        return new_sizes

    def _has_converged(self, best_history: list) -> bool:
        window = self.config.conv_window
        if len(best_history) <= window:
            return False
        best = best_history[-1]
        ref = best_history[-1 - window]
        scale = max(abs(best), abs(ref))
        return abs(best - ref) <= self.config.conv_rel_tol * scale


def anneal(
    cost_function: CostFunction,
    init_state: np.ndarray,
    config: Optional[AnnealingConfig] = None
) -> AnnealingResult:
    """Convenience function for a single annealing run."""
    return SimulatedAnnealing(cost_function, init_state, config).anneal()
