"""
Per-frame atom data.

An AtomSet is the immutable snapshot of one frame: sphere centres and van der
Waals radii, optionally with the atom/residue names used for radius lookup
and residue mapping.
"""

import numpy as np
from typing import Optional, Tuple
from dataclasses import dataclass
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AtomSet:
    """
    Atom spheres of a single frame.

    Arrays are copied and made read-only on construction.
    """
    positions: np.ndarray  # (N, 3) sphere centres
    radii: np.ndarray      # (N,) van der Waals radii
    atom_names: Optional[Tuple[str, ...]] = None
    res_names: Optional[Tuple[str, ...]] = None
    res_ids: Optional[np.ndarray] = None  # (N,) residue numbers

    def __post_init__(self):
        positions = np.array(self.positions, dtype=np.float64).reshape(-1, 3)
        radii = np.array(self.radii, dtype=np.float64).reshape(-1)

        if len(radii) != len(positions):
            raise ConfigurationError(
                f"Got {len(positions)} positions but {len(radii)} radii"
            )
        if np.any(radii < 0):
            raise ConfigurationError("Van der Waals radii may not be negative")

        positions.setflags(write=False)
        radii.setflags(write=False)
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "radii", radii)

        if self.res_ids is not None:
            res_ids = np.array(self.res_ids, dtype=np.int64).reshape(-1)
            res_ids.setflags(write=False)
            object.__setattr__(self, "res_ids", res_ids)
        if self.atom_names is not None:
            object.__setattr__(self, "atom_names", tuple(self.atom_names))
        if self.res_names is not None:
            object.__setattr__(self, "res_names", tuple(self.res_names))

    @property
    def n_atoms(self) -> int:
        return len(self.radii)

    @property
    def max_radius(self) -> float:
        """Largest van der Waals radius, 0.0 for an empty set."""
        return float(self.radii.max()) if self.n_atoms else 0.0

    @property
    def centre_of_geometry(self) -> np.ndarray:
        if self.n_atoms == 0:
            return np.zeros(3)
        return self.positions.mean(axis=0)

    def __len__(self) -> int:
        return self.n_atoms
