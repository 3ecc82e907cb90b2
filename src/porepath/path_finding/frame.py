"""
Cross-section coordinate frames.

A DirectionFrame maps 2D in-plane coordinates (a, b) to 3D points in the
plane orthogonal to the marching direction:

    point = origin + a * u + b * w
"""

import numpy as np
from typing import Optional
from dataclasses import dataclass

from ..common.errors import ConfigurationError

# Reference vectors tried in turn for Gram-Schmidt
_REFERENCE_VECTORS = (
    np.array([1.0, 0.0, 0.0]),
    np.array([0.0, 1.0, 0.0]),
    np.array([0.0, 0.0, 1.0]),
)


@dataclass(frozen=True)
class DirectionFrame:
    """Unit direction plus two unit vectors spanning its orthogonal plane."""
    direction: np.ndarray
    u: np.ndarray
    w: np.ndarray

    @classmethod
    def from_direction(
        cls,
        direction: np.ndarray,
        reference: Optional[np.ndarray] = None
    ) -> "DirectionFrame":
        """
        Build an orthonormal frame by Gram-Schmidt.

        Args:
            direction: Marching direction, any non-zero length
            reference: Vector not parallel to direction; picked automatically
                from the coordinate axes if None

        Returns:
            DirectionFrame with direction, u, w mutually orthonormal
        """
        direction = np.asarray(direction, dtype=np.float64).reshape(3)
        norm = np.linalg.norm(direction)
        if not np.isfinite(norm) or norm == 0.0:
            raise ConfigurationError("Direction vector may not be the zero vector")
        direction = direction / norm

        if reference is None:
            # coordinate axis least aligned with the direction
            reference = _REFERENCE_VECTORS[int(np.argmin(np.abs(direction)))]
        reference = np.asarray(reference, dtype=np.float64).reshape(3)

        u = reference - np.dot(reference, direction) * direction
        u_norm = np.linalg.norm(u)
        if u_norm < 1e-8:
            raise ConfigurationError("Reference vector is parallel to the direction vector")
        u = u / u_norm

        w = np.cross(direction, u)
        w = w / np.linalg.norm(w)
        return cls(direction=direction, u=u, w=w)

    def flipped(self) -> "DirectionFrame":
        """Same plane basis, opposite marching direction."""
        return DirectionFrame(direction=-self.direction, u=self.u, w=self.w)

    def plane_to_point(self, origin: np.ndarray, state: np.ndarray) -> np.ndarray:
        """Map in-plane coordinates (a, b) to a 3D point."""
        return origin + state[0] * self.u + state[1] * self.w
