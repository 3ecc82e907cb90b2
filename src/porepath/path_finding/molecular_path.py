"""
Molecular Path Module

Continuous representation of a pore: a centre line and a radius profile,
both parametrised by arclength s.

Construction:
- s_i = cumulative Euclidean distance between consecutive support points
- natural cubic splines through (s_i, position_i) and (s_i, radius_i)

Evaluation outside [s_lo, s_hi]:
- position continues linearly along the end tangent
- radius is held at the boundary value (never extrapolated into overlap)
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union
from dataclasses import dataclass

import numpy as np
from scipy.interpolate import CubicSpline
from scipy.optimize import minimize_scalar
from scipy.integrate import trapezoid

from ..common.errors import ConfigurationError, DegenerateResultError
from .finders import RawPath

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]

# Grid used for dense queries (nearest point, minimum radius, volume)
DENSE_SAMPLES_PER_POINT = 10
MIN_DENSE_SAMPLES = 200


@dataclass
class PathProfile:
    """Path sampled on a uniform arclength grid."""
    arclength: np.ndarray  # (M,)
    points: np.ndarray     # (M, 3) centre line positions
    radii: np.ndarray      # (M,)

    @property
    def n_points(self) -> int:
        return len(self.arclength)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "s": self.arclength.tolist(),
            "x": self.points[:, 0].tolist(),
            "y": self.points[:, 1].tolist(),
            "z": self.points[:, 2].tolist(),
            "radius": self.radii.tolist(),
        }


class MolecularPath:
    """
    Centre line and radius profile of a pore.

    Read-only after construction.
    """

    def __init__(
        self,
        positions: np.ndarray,
        radii: np.ndarray,
        extrap_dist: float = 0.0
    ):
        """
        Fit the path curves.

        Args:
            positions: (N, 3) support point positions in path order
            radii: (N,) free radius at each support point
            extrap_dist: Default distance beyond both ends covered by
                resample() and map_to_arclength()

        Raises:
            DegenerateResultError: fewer than two points, or consecutive
                points that do not advance along the path
        """
        positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        radii = np.array(radii, dtype=np.float64).reshape(-1)

        if len(positions) != len(radii):
            raise ConfigurationError(f"Got {len(positions)} positions but {len(radii)} radii")
        if len(positions) < 2:
            raise DegenerateResultError(
                f"A molecular path needs at least 2 support points, got {len(positions)}"
            )
        if extrap_dist < 0:
            raise ConfigurationError(f"extrap_dist may not be negative, got {extrap_dist}")

        segment_lengths = np.linalg.norm(np.diff(positions, axis=0), axis=1)
        if np.any(segment_lengths <= 0):
            raise DegenerateResultError("Path support points must have strictly increasing arclength")

        self._positions = positions
        self._radii = radii
        self._arclength = np.concatenate([[0.0], np.cumsum(segment_lengths)])
        self.extrap_dist = float(extrap_dist)

        self._centre_spline = CubicSpline(self._arclength, positions, axis=0, bc_type="natural")
        self._radius_spline = CubicSpline(self._arclength, radii, bc_type="natural")

        self._start_tangent = self._centre_spline(self.s_lo, 1)
        self._end_tangent = self._centre_spline(self.s_hi, 1)

        logger.debug(f"Molecular path: {len(radii)} support points, length {self.length():.3f}")

    @classmethod
    def from_raw_path(cls, raw_path: RawPath, extrap_dist: float = 0.0) -> "MolecularPath":
        return cls(raw_path.positions, raw_path.radii, extrap_dist=extrap_dist)

    # ========== Support data ==========

    @property
    def support_points(self) -> np.ndarray:
        return self._positions.copy()

    @property
    def support_radii(self) -> np.ndarray:
        return self._radii.copy()

    @property
    def support_arclength(self) -> np.ndarray:
        return self._arclength.copy()

    @property
    def s_lo(self) -> float:
        return float(self._arclength[0])

    @property
    def s_hi(self) -> float:
        return float(self._arclength[-1])

    def length(self) -> float:
        """Arclength between the two terminal support points."""
        return self.s_hi - self.s_lo

    # ========== Curve evaluation ==========

    def position(self, s: ArrayLike) -> np.ndarray:
        """Centre line position(s) at arclength s, shape (3,) or (M, 3)."""
        s_arr = np.atleast_1d(np.asarray(s, dtype=np.float64))
        out = self._centre_spline(np.clip(s_arr, self.s_lo, self.s_hi))

        below = s_arr < self.s_lo
        if np.any(below):
            out[below] = self._positions[0] + np.outer(s_arr[below] - self.s_lo, self._start_tangent)
        above = s_arr > self.s_hi
        if np.any(above):
            out[above] = self._positions[-1] + np.outer(s_arr[above] - self.s_hi, self._end_tangent)

        return out[0] if np.ndim(s) == 0 else out

    def radius(self, s: ArrayLike) -> ArrayLike:
        """Pore radius at arclength s, constant beyond the sampled extent."""
        s_arr = np.asarray(s, dtype=np.float64)
        r = self._radius_spline(np.clip(s_arr, self.s_lo, self.s_hi))
        return float(r) if np.ndim(s) == 0 else r

    def tangent(self, s: ArrayLike) -> np.ndarray:
        """Unit tangent of the centre line, constant beyond the sampled extent."""
        s_arr = np.atleast_1d(np.asarray(s, dtype=np.float64))
        t = self._centre_spline(np.clip(s_arr, self.s_lo, self.s_hi), 1)
        t = t / np.linalg.norm(t, axis=1, keepdims=True)
        return t[0] if np.ndim(s) == 0 else t

    # ========== Mapping ==========

    def map_to_arclength(self, point: np.ndarray, extrap_dist: Optional[float] = None) -> float:
        """
        Arclength of the centre line point nearest to point.

        Args:
            point: (3,) query position
            extrap_dist: Search range beyond the ends (self.extrap_dist if None)

        Returns:
            Arclength s in [s_lo - extrap_dist, s_hi + extrap_dist]
        """
        point = np.asarray(point, dtype=np.float64).reshape(3)
        extrap = self.extrap_dist if extrap_dist is None else extrap_dist
        lo, hi = self.s_lo - extrap, self.s_hi + extrap

        # coarse search on a dense grid, then refine within the bracketing cells
        n_grid = max(MIN_DENSE_SAMPLES, DENSE_SAMPLES_PER_POINT * len(self._radii))
        s_grid = np.linspace(lo, hi, n_grid)
        sq_dist = np.sum((self.position(s_grid) - point) ** 2, axis=1)
        i = int(np.argmin(sq_dist))

        a = s_grid[max(i - 1, 0)]
        b = s_grid[min(i + 1, n_grid - 1)]
        if b <= a:
            return float(s_grid[i])

        result = minimize_scalar(
            lambda s: float(np.sum((self.position(s) - point) ** 2)),
            bounds=(a, b),
            method="bounded",
            options={"xatol": 1e-8},
        )
        if result.fun <= sq_dist[i]:
            return float(result.x)
        return float(s_grid[i])

    def map_positions(
        self,
        points: np.ndarray,
        extrap_dist: Optional[float] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Map points onto path coordinates.

        Args:
            points: (M, 3) positions, e.g. residue centres

        Returns:
            Tuple of (s, rho): arclength of the nearest centre line point and
            distance from the centre line
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        s = np.array([self.map_to_arclength(p, extrap_dist) for p in points])
        if len(s) == 0:
            return s, np.empty(0)
        rho = np.linalg.norm(points - self.position(s).reshape(-1, 3), axis=1)
        return s, rho

    def check_if_inside(
        self,
        points: np.ndarray,
        margin: float = 0.0,
        extrap_dist: Optional[float] = None
    ) -> np.ndarray:
        """
        Flag points that lie within the pore.

        A point is inside if it maps onto [s_lo - extrap_dist, s_hi + extrap_dist]
        and its distance from the centre line is at most radius(s) + margin.
        """
        extrap = self.extrap_dist if extrap_dist is None else extrap_dist
        # search past the accepted range so points beyond an end map beyond it
        search_extrap = extrap + float(self._radii.max()) + abs(margin) + 1.0
        s, rho = self.map_positions(points, search_extrap)
        if len(s) == 0:
            return np.zeros(0, dtype=bool)
        in_range = (s >= self.s_lo - extrap) & (s <= self.s_hi + extrap)
        return in_range & (rho <= self.radius(s) + margin)

    # ========== Sampling ==========

    def resample(
        self,
        spacing: Optional[float] = None,
        num_points: Optional[int] = None,
        extrap_dist: Optional[float] = None
    ) -> PathProfile:
        """
        Sample the path on a uniform arclength grid.

        Exactly one of spacing and num_points must be given.

        Args:
            spacing: Distance between consecutive samples
            num_points: Number of samples (>= 2), endpoints included
            extrap_dist: Extension beyond both ends (self.extrap_dist if None)

        Returns:
            PathProfile with arclength, positions and radii
        """
        if (spacing is None) == (num_points is None):
            raise ConfigurationError("Give exactly one of spacing and num_points")

        extrap = self.extrap_dist if extrap_dist is None else extrap_dist
        if extrap < 0:
            raise ConfigurationError(f"extrap_dist may not be negative, got {extrap}")
        lo, hi = self.s_lo - extrap, self.s_hi + extrap

        if spacing is not None:
            if spacing <= 0:
                raise ConfigurationError(f"spacing must be positive, got {spacing}")
            n = int(np.floor((hi - lo) / spacing + 1e-9)) + 1
            s = lo + np.arange(n) * spacing
        else:
            if num_points < 2:
                raise ConfigurationError(f"num_points must be >= 2, got {num_points}")
            s = np.linspace(lo, hi, num_points)

        return PathProfile(
            arclength=s,
            points=self.position(s).reshape(-1, 3),
            radii=np.asarray(self.radius(s), dtype=np.float64).reshape(-1),
        )

    # ========== Summary quantities ==========

    def _dense_grid(self) -> np.ndarray:
        n = max(MIN_DENSE_SAMPLES, DENSE_SAMPLES_PER_POINT * len(self._radii))
        return np.linspace(self.s_lo, self.s_hi, n)

    def min_radius(self) -> Tuple[float, float]:
        """Return (s, radius) of the narrowest point of the pore."""
        s = np.union1d(self._dense_grid(), self._arclength)
        r = self.radius(s)
        i = int(np.argmin(r))
        return float(s[i]), float(r[i])

    def volume(self) -> float:
        """Pore volume, integral of pi * r(s)^2 over the sampled extent."""
        s = self._dense_grid()
        return float(trapezoid(np.pi * self.radius(s) ** 2, s))

    def to_dict(self) -> Dict[str, Any]:
        s_min, r_min = self.min_radius()
        return {
            "n_support_points": len(self._radii),
            "length": self.length(),
            "s_lo": self.s_lo,
            "s_hi": self.s_hi,
            "min_radius": r_min,
            "min_radius_s": s_min,
            "volume": self.volume(),
            "extrap_dist": self.extrap_dist,
        }
