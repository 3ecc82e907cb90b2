"""
Neighbour search over atom centres.

Path finding only ever asks one question of the atom cloud: which atoms have
their centre within a cutoff of a point. Any object with a matching
``neighbors`` method can be plugged in; KDTreeNeighborSearch is the default.
"""

import numpy as np
from typing import Protocol
import logging

from scipy.spatial import cKDTree

from .atoms import AtomSet

logger = logging.getLogger(__name__)


class NeighborSearch(Protocol):
    """Spatial index interface used by the void radius evaluator."""

    atoms: AtomSet

    def neighbors(self, point: np.ndarray, cutoff: float) -> np.ndarray:
        """Return indices of atoms whose centre lies within cutoff of point."""
        ...


class KDTreeNeighborSearch:
    """
    cKDTree-backed neighbour search for one frame.

    The tree is built once on construction; queries are read-only, so one
    instance may serve every optimization run of the frame.
    """

    def __init__(self, atoms: AtomSet):
        self.atoms = atoms
        if atoms.n_atoms > 0:
            self._tree = cKDTree(atoms.positions)
        else:
            self._tree = None
        logger.debug(f"Built neighbour search over {atoms.n_atoms} atoms")

    def neighbors(self, point: np.ndarray, cutoff: float) -> np.ndarray:
        if self._tree is None:
            return np.empty(0, dtype=np.intp)
        idx = self._tree.query_ball_point(np.asarray(point, dtype=np.float64), r=cutoff)
        return np.sort(np.asarray(idx, dtype=np.intp))
