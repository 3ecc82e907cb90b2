"""
Configuration and constants for pore path finding.

Length Units:
- All lengths (positions, radii, step lengths, cutoffs) are in the units of
  the atom coordinates. Defaults assume Angstrom.

Every config validates itself on construction and raises ConfigurationError
for values that would make path finding meaningless.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
import json
from pathlib import Path

import numpy as np

from .errors import ConfigurationError


class PathFindingMethod(Enum):
    """
    Path finding strategies.

    INPLANE_OPTIMIZED (default): march along the channel direction and
        maximise the free radius within each cross-section
    NAIVE_CYLINDRICAL: straight cylinder of constant probe radius along the
        channel direction, no optimization
    """
    INPLANE_OPTIMIZED = "inplane_optim"
    NAIVE_CYLINDRICAL = "naive_cylindrical"


@dataclass
class AnnealingConfig:
    """Parameters of a single simulated annealing run."""

    seed: int = 15011991                # Seed of the run-local random stream
    max_cooling_iter: int = 1000        # Upper bound on temperature stages
    num_cost_samples: int = 10          # Candidates drawn per temperature stage
    xi: float = 3.0                     # Scale of the Metropolis criterion
    conv_rel_tol: float = 1e-10         # Relative change of best cost for convergence
    conv_window: int = 10               # Trailing stages compared for convergence
    init_temp: float = 0.1
    cooling_factor: float = 0.98        # T <- cooling_factor * T after each stage
    step_length_factor: float = 0.1     # Scale of candidate displacements
    use_adaptive_cand_gen: bool = False  # Adapt per-dimension step sizes

    def __post_init__(self):
        if self.max_cooling_iter < 1:
            raise ConfigurationError(f"max_cooling_iter must be >= 1, got {self.max_cooling_iter}")
        if self.num_cost_samples < 1:
            raise ConfigurationError(f"num_cost_samples must be >= 1, got {self.num_cost_samples}")
        if self.xi <= 0:
            raise ConfigurationError(f"xi must be positive, got {self.xi}")
        if self.conv_rel_tol < 0:
            raise ConfigurationError(f"conv_rel_tol may not be negative, got {self.conv_rel_tol}")
        if self.conv_window < 1:
            raise ConfigurationError(f"conv_window must be >= 1, got {self.conv_window}")
        if self.init_temp <= 0:
            raise ConfigurationError(f"init_temp must be positive, got {self.init_temp}")
        if not 0 < self.cooling_factor <= 1:
            raise ConfigurationError(f"cooling_factor must lie in (0, 1], got {self.cooling_factor}")
        if self.step_length_factor <= 0:
            raise ConfigurationError(f"step_length_factor must be positive, got {self.step_length_factor}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "max_cooling_iter": self.max_cooling_iter,
            "num_cost_samples": self.num_cost_samples,
            "xi": self.xi,
            "conv_rel_tol": self.conv_rel_tol,
            "conv_window": self.conv_window,
            "init_temp": self.init_temp,
            "cooling_factor": self.cooling_factor,
            "step_length_factor": self.step_length_factor,
            "use_adaptive_cand_gen": self.use_adaptive_cand_gen,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnealingConfig":
        return cls(**data)


@dataclass
class PathFindingConfig:
    """
    Configuration for finding a pore path in one frame.

    init_probe_pos defaults to the centre of geometry of the atoms when None.
    cutoff defaults to max_probe_radius plus the largest van der Waals
    radius when None, so that every clearance below max_probe_radius is exact.
    """

    method: PathFindingMethod = PathFindingMethod.INPLANE_OPTIMIZED

    # Marching
    probe_step_length: float = 1.0
    probe_radius: float = 0.0           # Radius of the naive cylinder
    max_probe_radius: float = 10.0      # Free radius at which the channel has ended
    max_probe_steps: int = 200          # Per direction
    init_probe_pos: Optional[Tuple[float, float, float]] = None
    chan_dir_vec: Tuple[float, float, float] = (0.0, 0.0, 1.0)

    # Neighbour search
    cutoff: Optional[float] = None

    # Local refinement (Nelder-Mead)
    nm_max_iter: int = 100

    # Output sampling
    extrap_dist: float = 0.0
    num_out_points: int = 1000

    annealing: AnnealingConfig = field(default_factory=AnnealingConfig)

    def __post_init__(self):
        if isinstance(self.method, str):
            self.method = PathFindingMethod(self.method)
        if isinstance(self.annealing, dict):
            self.annealing = AnnealingConfig.from_dict(self.annealing)

        if self.probe_step_length <= 0:
            raise ConfigurationError(f"probe_step_length must be positive, got {self.probe_step_length}")
        if self.probe_radius < 0:
            raise ConfigurationError(f"probe_radius may not be negative, got {self.probe_radius}")
        if self.max_probe_radius <= 0:
            raise ConfigurationError(f"max_probe_radius must be positive, got {self.max_probe_radius}")
        if self.max_probe_steps < 0:
            raise ConfigurationError(f"max_probe_steps may not be negative, got {self.max_probe_steps}")
        if self.cutoff is not None and self.cutoff <= 0:
            raise ConfigurationError(f"cutoff must be positive, got {self.cutoff}")
        # clearance is capped at cutoff; marching only ends once it exceeds max_probe_radius
        if self.cutoff is not None and self.cutoff <= self.max_probe_radius:
            raise ConfigurationError(
                f"cutoff ({self.cutoff}) must exceed max_probe_radius ({self.max_probe_radius})"
            )
        if self.nm_max_iter < 0:
            raise ConfigurationError(f"nm_max_iter may not be negative, got {self.nm_max_iter}")
        if self.extrap_dist < 0:
            raise ConfigurationError(f"extrap_dist may not be negative, got {self.extrap_dist}")
        if self.num_out_points < 2:
            raise ConfigurationError(f"num_out_points must be >= 2, got {self.num_out_points}")

        direction = np.asarray(self.chan_dir_vec, dtype=float)
        if direction.shape != (3,):
            raise ConfigurationError(f"chan_dir_vec must have 3 components, got {self.chan_dir_vec}")
        if not np.all(np.isfinite(direction)) or np.linalg.norm(direction) == 0:
            raise ConfigurationError("chan_dir_vec may not be the zero vector")
        self.chan_dir_vec = tuple(float(c) for c in direction)

        if self.init_probe_pos is not None:
            pos = np.asarray(self.init_probe_pos, dtype=float)
            if pos.shape != (3,):
                raise ConfigurationError(f"init_probe_pos must have 3 components, got {self.init_probe_pos}")
            self.init_probe_pos = tuple(float(c) for c in pos)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "probe_step_length": self.probe_step_length,
            "probe_radius": self.probe_radius,
            "max_probe_radius": self.max_probe_radius,
            "max_probe_steps": self.max_probe_steps,
            "init_probe_pos": list(self.init_probe_pos) if self.init_probe_pos is not None else None,
            "chan_dir_vec": list(self.chan_dir_vec),
            "cutoff": self.cutoff,
            "nm_max_iter": self.nm_max_iter,
            "extrap_dist": self.extrap_dist,
            "num_out_points": self.num_out_points,
            "annealing": self.annealing.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PathFindingConfig":
        data = dict(data)
        if "method" in data:
            data["method"] = PathFindingMethod(data["method"])
        if "annealing" in data:
            data["annealing"] = AnnealingConfig.from_dict(data["annealing"])
        return cls(**data)

    @classmethod
    def from_json(cls, path: Path) -> "PathFindingConfig":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = PathFindingConfig()
