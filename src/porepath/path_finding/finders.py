"""
Path Finders

Strategies that turn a frame's atoms into an ordered list of pore support
points (a RawPath). Strategies share the PathFinder interface and are picked
by PathFindingConfig.method through create_path_finder().

InplaneOptimizedProbePathFinder marches a probe through the pore:

    INIT -> OPTIMIZE_SEED -> ADVANCE_FORWARD -> REVERSE_ACCUMULATOR
         -> ADVANCE_BACKWARD -> DONE

Each step moves the probe by probe_step_length along the channel direction
and re-centres it within the cross-section by maximising the free radius.
Marching in one direction stops after max_probe_steps steps or once the free
radius exceeds max_probe_radius (the probe has left the pore).

The in-plane basis (u, w) is derived once per run; the channel direction is
not re-estimated while marching.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol
from dataclasses import dataclass, field

import numpy as np

from ..common.atoms import AtomSet
from ..common.config import PathFindingConfig, PathFindingMethod
from ..common.errors import DegenerateResultError
from ..common.neighbors import NeighborSearch
from ..optimization.annealing import OptimizationStatus
from .frame import DirectionFrame
from .void_radius import PathPoint, VoidRadiusEvaluator

logger = logging.getLogger(__name__)


@dataclass
class RawPath:
    """
    Ordered pore support points.

    Runs along the channel direction with strictly increasing arclength and
    contains the optimised initial probe position exactly once, at seed_index.
    """
    points: List[PathPoint]
    seed_index: int = 0
    num_unconverged: int = 0  # Cross-sections whose annealing hit the iteration limit
    metadata: Dict[str, object] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def positions(self) -> np.ndarray:
        """Return Nx3 array of support point positions."""
        if not self.points:
            return np.empty((0, 3))
        return np.vstack([p.position for p in self.points])

    @property
    def radii(self) -> np.ndarray:
        return np.array([p.radius for p in self.points], dtype=np.float64)

    @property
    def seed(self) -> PathPoint:
        return self.points[self.seed_index]

    @property
    def arclength(self) -> np.ndarray:
        """Cumulative Euclidean distance along the support points."""
        if len(self.points) < 2:
            return np.zeros(len(self.points))
        segment_lengths = np.linalg.norm(np.diff(self.positions, axis=0), axis=1)
        return np.concatenate([[0.0], np.cumsum(segment_lengths)])


class PathFinder(Protocol):
    """Interface shared by all path finding strategies."""

    def find_path(self) -> RawPath:
        ...


def resolve_cutoff(config: PathFindingConfig, atoms: AtomSet) -> float:
    """Neighbour search cutoff: explicit value or max_probe_radius + largest vdW radius."""
    if config.cutoff is not None:
        return config.cutoff
    return config.max_probe_radius + atoms.max_radius


def resolve_init_probe_pos(config: PathFindingConfig, atoms: AtomSet) -> np.ndarray:
    """Initial probe position: explicit value or the atoms' centre of geometry."""
    if config.init_probe_pos is not None:
        return np.array(config.init_probe_pos, dtype=np.float64)
    return atoms.centre_of_geometry


class MarchingState(Enum):
    INIT = "init"
    OPTIMIZE_SEED = "optimize_seed"
    ADVANCE_FORWARD = "advance_forward"
    REVERSE_ACCUMULATOR = "reverse_accumulator"
    ADVANCE_BACKWARD = "advance_backward"
    DONE = "done"


class InplaneOptimizedProbePathFinder:
    """
    Probe marching with in-plane free radius maximisation.

    One instance handles one frame; find_path() may be called repeatedly and
    always restarts from INIT.
    """

    def __init__(
        self,
        search: NeighborSearch,
        config: PathFindingConfig,
        evaluator: Optional[VoidRadiusEvaluator] = None
    ):
        """
        Initialize path finder.

        Args:
            search: Neighbour search over the frame's atoms
            config: Path finding configuration
            evaluator: Custom void radius evaluator (built from config if None)
        """
        self.search = search
        self.config = config
        self.cutoff = resolve_cutoff(config, search.atoms)
        self.evaluator = evaluator if evaluator is not None else VoidRadiusEvaluator(
            search,
            cutoff=self.cutoff,
            annealing=config.annealing,
            nm_max_iter=config.nm_max_iter,
        )

        self.state = MarchingState.INIT
        self._handlers: Dict[MarchingState, Callable[[], MarchingState]] = {
            MarchingState.INIT: self._init,
            MarchingState.OPTIMIZE_SEED: self._optimize_seed,
            MarchingState.ADVANCE_FORWARD: self._advance_forward,
            MarchingState.REVERSE_ACCUMULATOR: self._reverse_accumulator,
            MarchingState.ADVANCE_BACKWARD: self._advance_backward,
        }
        self._reset()

    def _reset(self) -> None:
        self._frame: Optional[DirectionFrame] = None
        self._init_pos: Optional[np.ndarray] = None
        self._seed: Optional[PathPoint] = None
        self._accumulator: List[PathPoint] = []
        self._num_forward = 0
        self._num_backward = 0
        self._num_unconverged = 0

    def find_path(self) -> RawPath:
        """
        Run the marching state machine.

        Returns:
            RawPath ordered along the channel direction
        """
        self._reset()
        self.state = MarchingState.INIT
        while self.state != MarchingState.DONE:
            self.state = self._handlers[self.state]()
        return self._assemble()

    # ========== States ==========

    def _init(self) -> MarchingState:
        self._frame = DirectionFrame.from_direction(np.array(self.config.chan_dir_vec))
        self._init_pos = resolve_init_probe_pos(self.config, self.search.atoms)

        logger.info(
            f"Probe path finding from {np.round(self._init_pos, 3)} "
            f"along {np.round(self._frame.direction, 3)}, cutoff={self.cutoff:.3f}"
        )

        if not self.evaluator.has_neighbors(self._init_pos):
            raise DegenerateResultError(
                f"No atoms within cutoff {self.cutoff:.3f} of initial probe position "
                f"{np.round(self._init_pos, 3).tolist()}"
            )
        return MarchingState.OPTIMIZE_SEED

    def _optimize_seed(self) -> MarchingState:
        result = self.evaluator.maximise_void_radius(self._init_pos, self._frame)
        self._track_status(result.status)
        self._seed = result.point
        self._accumulator = [self._seed]
        logger.info(f"Optimised seed radius: {self._seed.radius:.4f}")
        return MarchingState.ADVANCE_FORWARD

    def _advance_forward(self) -> MarchingState:
        steps = self._advance(self._frame.direction)
        self._accumulator.extend(steps)
        self._num_forward = len(steps)
        return MarchingState.REVERSE_ACCUMULATOR

    def _reverse_accumulator(self) -> MarchingState:
        self._accumulator.reverse()
        return MarchingState.ADVANCE_BACKWARD

    def _advance_backward(self) -> MarchingState:
        steps = self._advance(-self._frame.direction)
        self._accumulator.extend(steps)
        self._num_backward = len(steps)
        return MarchingState.DONE

    # ========== Helpers ==========

    def _advance(self, direction: np.ndarray) -> List[PathPoint]:
        """March from the seed along direction; returns points in marching order."""
        cfg = self.config
        points: List[PathPoint] = []

        if self._seed.radius > cfg.max_probe_radius:
            logger.warning(
                f"Seed radius {self._seed.radius:.4f} exceeds max_probe_radius "
                f"{cfg.max_probe_radius}; not marching"
            )
            return points

        crnt_pos = self._seed.position
        for step in range(1, cfg.max_probe_steps + 1):
            plane_origin = crnt_pos + cfg.probe_step_length * direction
            result = self.evaluator.maximise_void_radius(plane_origin, self._frame)
            self._track_status(result.status)

            points.append(result.point)
            crnt_pos = result.point.position

            logger.debug(f"Step {step}: radius {result.point.radius:.4f}")

            if result.point.radius > cfg.max_probe_radius:
                logger.debug(f"Probe left the pore after {step} steps")
                break

        return points

    def _track_status(self, status: OptimizationStatus) -> None:
        if status != OptimizationStatus.CONVERGED:
            self._num_unconverged += 1

    def _assemble(self) -> RawPath:
        # accumulator runs [forward end .. seed .. backward end]; flip to follow the direction
        points = list(reversed(self._accumulator))
        seed_index = self._num_backward

        if self._num_unconverged:
            logger.info(
                f"{self._num_unconverged} cross-sections reached the annealing iteration limit"
            )
        logger.info(
            f"Raw path: {len(points)} points ({self._num_backward} backward, "
            f"{self._num_forward} forward)"
        )

        return RawPath(
            points=points,
            seed_index=seed_index,
            num_unconverged=self._num_unconverged,
            metadata={
                "method": PathFindingMethod.INPLANE_OPTIMIZED.value,
                "direction": self._frame.direction.tolist(),
                "cutoff": self.cutoff,
                "num_forward": self._num_forward,
                "num_backward": self._num_backward,
            },
        )


class NaiveCylindricalPathFinder:
    """
    Straight cylinder of constant radius probe_radius.

    Places 2 * max_probe_steps + 1 points spaced probe_step_length apart along
    the channel direction, centred on the initial probe position.
    """

    def __init__(self, search: NeighborSearch, config: PathFindingConfig):
        self.search = search
        self.config = config

    def find_path(self) -> RawPath:
        cfg = self.config
        frame = DirectionFrame.from_direction(np.array(cfg.chan_dir_vec))
        centre = resolve_init_probe_pos(cfg, self.search.atoms)

        offsets = np.arange(-cfg.max_probe_steps, cfg.max_probe_steps + 1) * cfg.probe_step_length
        points = [
            PathPoint(position=centre + s * frame.direction, radius=cfg.probe_radius)
            for s in offsets
        ]

        logger.info(f"Naive cylinder: {len(points)} points, radius {cfg.probe_radius}")
        return RawPath(
            points=points,
            seed_index=cfg.max_probe_steps,
            metadata={
                "method": PathFindingMethod.NAIVE_CYLINDRICAL.value,
                "direction": frame.direction.tolist(),
            },
        )


PATH_FINDERS = {
    PathFindingMethod.INPLANE_OPTIMIZED: InplaneOptimizedProbePathFinder,
    PathFindingMethod.NAIVE_CYLINDRICAL: NaiveCylindricalPathFinder,
}


def create_path_finder(search: NeighborSearch, config: PathFindingConfig) -> PathFinder:
    """Instantiate the path finder selected by config.method."""
    return PATH_FINDERS[config.method](search, config)
