"""
Common modules shared by all path finding stages.

Length Units:
- All lengths are in the units of the atom coordinates (Angstrom by default)
"""

from .config import AnnealingConfig, PathFindingConfig, PathFindingMethod, DEFAULT_CONFIG
from .errors import PorePathError, ConfigurationError, DegenerateResultError
from .atoms import AtomSet
from .neighbors import NeighborSearch, KDTreeNeighborSearch
from .vdw_radii import VdwRadiusProvider, VdwRadiusRecord
from .io import load_atoms, write_path_pdb, build_pore_surface, save_pore_surface, save_profile_json

__all__ = [
    'AnnealingConfig', 'PathFindingConfig', 'PathFindingMethod', 'DEFAULT_CONFIG',
    'PorePathError', 'ConfigurationError', 'DegenerateResultError',
    'AtomSet',
    'NeighborSearch', 'KDTreeNeighborSearch',
    'VdwRadiusProvider', 'VdwRadiusRecord',
    'load_atoms', 'write_path_pdb', 'build_pore_surface', 'save_pore_surface', 'save_profile_json',
]
