"""
Void Radius Module

Turns a point in space into a clearance value (free radius) and finds the
point of maximal clearance within a cross-section.

Clearance of point p:
    min over atoms i within cutoff of |p - x_i| - r_i
    = cutoff when no atom centre lies within cutoff

Maximisation is two-stage:
1. Simulated annealing over the in-plane coordinate escapes the local optima
   of irregular atom packings
2. Nelder-Mead started from the annealing optimum sharpens the result
The final point is taken from whichever stage found the larger clearance.
"""

import logging
from typing import Optional
from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize

from ..common.config import AnnealingConfig
from ..common.neighbors import NeighborSearch
from ..common.errors import ConfigurationError
from ..optimization.annealing import SimulatedAnnealing, OptimizationStatus
from .frame import DirectionFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathPoint:
    """Support point of a pore path: position and free radius there."""
    position: np.ndarray
    radius: float

    def __post_init__(self):
        position = np.array(self.position, dtype=np.float64).reshape(3)
        position.setflags(write=False)
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "radius", float(self.radius))


@dataclass
class VoidRadiusResult:
    """Outcome of one cross-section maximisation."""
    point: PathPoint
    status: OptimizationStatus  # Status of the annealing stage
    refined: bool               # True if the Nelder-Mead stage gave the result


def clearance(point: np.ndarray, search: NeighborSearch, cutoff: float) -> float:
    """
    Free radius at a point.

    Args:
        point: (3,) query position
        search: Neighbour search over the frame's atoms
        cutoff: Neighbour search radius; also the cap on the result

    Returns:
        Distance from point to the nearest atom surface, at most cutoff
    """
    point = np.asarray(point, dtype=np.float64)
    idx = search.neighbors(point, cutoff)
    if len(idx) == 0:
        return float(cutoff)
    atoms = search.atoms
    dist = np.linalg.norm(atoms.positions[idx] - point, axis=1) - atoms.radii[idx]
    return float(dist.min())


class VoidRadiusEvaluator:
    """
    Clearance evaluation and maximisation against one frame's atoms.

    Holds a read-only view of the frame (the neighbour search); safe to reuse
    for every cross-section of the frame.
    """

    def __init__(
        self,
        search: NeighborSearch,
        cutoff: float,
        annealing: Optional[AnnealingConfig] = None,
        nm_max_iter: int = 100
    ):
        """
        Initialize evaluator.

        Args:
            search: Neighbour search over the frame's atoms
            cutoff: Neighbour search radius
            annealing: Parameters of the global (annealing) stage
            nm_max_iter: Iteration limit of the local (Nelder-Mead) stage;
                0 disables the local stage
        """
        if cutoff <= 0:
            raise ConfigurationError(f"cutoff must be positive, got {cutoff}")
        if nm_max_iter < 0:
            raise ConfigurationError(f"nm_max_iter may not be negative, got {nm_max_iter}")
        self.search = search
        self.cutoff = float(cutoff)
        self.annealing = annealing if annealing is not None else AnnealingConfig()
        self.nm_max_iter = nm_max_iter

    def clearance(self, point: np.ndarray) -> float:
        return clearance(point, self.search, self.cutoff)

    def has_neighbors(self, point: np.ndarray) -> bool:
        """True if any atom centre lies within the cutoff of point."""
        return len(self.search.neighbors(np.asarray(point, dtype=np.float64), self.cutoff)) > 0

    def maximise_void_radius(
        self,
        seed_point: np.ndarray,
        frame: Optional[DirectionFrame] = None
    ) -> VoidRadiusResult:
        """
        Find the point of maximal clearance near seed_point.

        Args:
            seed_point: (3,) origin of the search
            frame: Cross-section frame; the search is confined to the plane
                through seed_point orthogonal to frame.direction. If None,
                the search runs freely in 3D.

        Returns:
            VoidRadiusResult with the optimal PathPoint
        """
        origin = np.asarray(seed_point, dtype=np.float64).reshape(3)

        if frame is not None:
            dim = 2

            def to_point(state: np.ndarray) -> np.ndarray:
                return frame.plane_to_point(origin, state)
        else:
            dim = 3

            def to_point(state: np.ndarray) -> np.ndarray:
                return origin + state

        def cost(state: np.ndarray) -> float:
            return -self.clearance(to_point(state))

        # Stage 1: global search
        sa = SimulatedAnnealing(cost, np.zeros(dim), self.annealing)
        sa_result = sa.anneal()
        best_state = sa_result.best_state
        best_cost = sa_result.best_cost
        refined = False

        # Stage 2: local refinement
        if self.nm_max_iter > 0:
            step = self.annealing.step_length_factor
            simplex = np.vstack([best_state, best_state + step * np.eye(dim)])
            nm_result = minimize(
                cost,
                best_state,
                method="Nelder-Mead",
                options={"maxiter": self.nm_max_iter, "initial_simplex": simplex},
            )
            if nm_result.fun < best_cost:
                best_state = np.asarray(nm_result.x, dtype=np.float64)
                best_cost = float(nm_result.fun)
                refined = True

        position = to_point(best_state)
        logger.debug(
            f"Void radius at {np.round(position, 3)}: {-best_cost:.4f} "
            f"(SA {sa_result.status.value}, refined={refined})"
        )

        return VoidRadiusResult(
            point=PathPoint(position=position, radius=-best_cost),
            status=sa_result.status,
            refined=refined,
        )
