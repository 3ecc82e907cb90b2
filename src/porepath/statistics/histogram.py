"""
Histogram density estimation.

Estimates the probability density of scalar samples (e.g. arclength
coordinates of residues mapped onto a pore) as a piecewise linear curve
through the bin midpoints.

Bins start 1.5 bin widths below the smallest sample and extend to at least
1.5 bin widths above the largest, so the outermost bins are always empty and
constant extrapolation of the curve yields zero density.
"""

import logging
from typing import Optional, Tuple
from dataclasses import dataclass

import numpy as np

from ..common.errors import ConfigurationError

logger = logging.getLogger(__name__)

MAX_BIN_NUMBER = 25000


@dataclass
class DensityCurve:
    """Piecewise linear density, constant beyond the outermost midpoints."""
    midpoints: np.ndarray
    density: np.ndarray

    def __call__(self, x):
        return np.interp(x, self.midpoints, self.density)

    def integral(self) -> float:
        return float(np.sum(np.diff(self.midpoints) * 0.5 * (self.density[1:] + self.density[:-1])))


class HistogramDensityEstimator:
    """Histogram estimator with a fixed bin width."""

    def __init__(self, bin_width: float):
        self.bin_width = 0.0
        self.set_bin_width(bin_width)

    def set_bin_width(self, bin_width: float) -> None:
        if bin_width <= 0:
            raise ConfigurationError("Histogram bin width must be positive!")
        self.bin_width = float(bin_width)

    def estimate(self, samples: np.ndarray) -> DensityCurve:
        """
        Estimate density from samples.

        Args:
            samples: 1D array of scalar samples (at least one)

        Returns:
            DensityCurve integrating to one
        """
        samples = np.sort(np.asarray(samples, dtype=np.float64).reshape(-1))
        if len(samples) == 0:
            raise ValueError("Cannot estimate density from zero samples")

        breaks = self.create_breaks(samples[0], samples[-1])
        midpoints = breaks[:-1] + 0.5 * self.bin_width

        if len(midpoints) > MAX_BIN_NUMBER:
            raise ValueError(
                "Number of bins exceeds limit for spline interpolation! Need to increase bin width."
            )

        counts, _ = np.histogram(samples, bins=breaks)
        density = counts / (len(samples) * self.bin_width)

        logger.debug(f"Histogram: {len(samples)} samples in {len(midpoints)} bins")
        return DensityCurve(midpoints=midpoints, density=density)

    def create_breaks(self, range_lo: float, range_hi: float) -> np.ndarray:
        """Equidistant break points covering [range_lo, range_hi] with empty end bins."""
        breaks_lo = range_lo - 1.5 * self.bin_width
        upper = range_hi + 1.5 * self.bin_width
        n_breaks = int(np.floor((upper - breaks_lo) / self.bin_width)) + 2
        return breaks_lo + np.arange(n_breaks) * self.bin_width


def residue_profile(
    path,
    points: np.ndarray,
    bin_width: float,
    margin: Optional[float] = None
) -> Tuple[DensityCurve, np.ndarray]:
    """
    Density of points along a molecular path.

    Args:
        path: MolecularPath to map points onto
        points: (M, 3) positions (e.g. residue centres)
        bin_width: Histogram bin width along arclength
        margin: If given, only points within radius(s) + margin of the centre
            line are counted

    Returns:
        Tuple of (density curve over arclength, arclength of counted points)
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    s, rho = path.map_positions(points)
    if margin is not None:
        keep = rho <= path.radius(s) + margin
        s = s[keep]
    estimator = HistogramDensityEstimator(bin_width)
    return estimator.estimate(s), s
