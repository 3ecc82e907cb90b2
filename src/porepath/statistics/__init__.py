"""
Density estimation along pore paths.
"""

from .histogram import HistogramDensityEstimator, DensityCurve, residue_profile

__all__ = [
    "HistogramDensityEstimator",
    "DensityCurve",
    "residue_profile",
]
