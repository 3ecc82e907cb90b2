"""
Pore path finding: probe marching, void radius maximisation and the
continuous molecular path built from the result.
"""

from .frame import DirectionFrame
from .void_radius import PathPoint, VoidRadiusEvaluator, VoidRadiusResult, clearance
from .finders import (
    RawPath,
    PathFinder,
    MarchingState,
    InplaneOptimizedProbePathFinder,
    NaiveCylindricalPathFinder,
    create_path_finder,
)
from .molecular_path import MolecularPath, PathProfile

__all__ = [
    "DirectionFrame",
    "PathPoint",
    "VoidRadiusEvaluator",
    "VoidRadiusResult",
    "clearance",
    "RawPath",
    "PathFinder",
    "MarchingState",
    "InplaneOptimizedProbePathFinder",
    "NaiveCylindricalPathFinder",
    "create_path_finder",
    "MolecularPath",
    "PathProfile",
]
