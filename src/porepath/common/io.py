"""
Data I/O utilities.

Loads per-frame atom tables and writes pore results:
- profile JSON (arclength, centre line, radius)
- PDB file of pore centre points (radius in occupancy and B-factor columns)
- pore surface mesh via trimesh (Wavefront OBJ by default)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
import trimesh

from .atoms import AtomSet
from .vdw_radii import GENERIC_RESIDUE, VdwRadiusProvider

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_atoms(
    path: PathLike,
    radius_provider: Optional[VdwRadiusProvider] = None
) -> AtomSet:
    """
    Load atoms from CSV or parquet file.

    Expected columns:
    - x, y, z
    - radius or vdw_radius (optional; looked up by name if missing)
    - atom_name, res_name, res_id, element (optional)

    Args:
        path: Path to data file
        radius_provider: Radius lookup for tables without a radius column
            (Bondi radii by element if None)

    Returns:
        AtomSet with positions and radii
    """
    path = Path(path)
    if path.suffix == '.parquet':
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)

    logger.info(f"Loaded {len(df)} atoms from {path}")

    def find_col(candidates: List[str]) -> Optional[str]:
        for c in candidates:
            if c in df.columns:
                return c
        return None

    missing = [c for c in ('x', 'y', 'z') if c not in df.columns]
    if missing:
        raise ValueError(f"Could not find coordinate columns {missing} in {df.columns.tolist()}")

    radius_col = find_col(['radius', 'vdw_radius', 'vdwr'])
    atom_col = find_col(['atom_name', 'name'])
    res_col = find_col(['res_name', 'resname'])
    resid_col = find_col(['res_id', 'resid', 'resi'])
    elem_col = find_col(['element'])

    atom_names = df[atom_col].astype(str).str.strip().tolist() if atom_col else None
    res_names = df[res_col].astype(str).str.strip().tolist() if res_col else None

    if radius_col:
        radii = df[radius_col].to_numpy(dtype=np.float64)
    else:
        if atom_names is None and elem_col is None:
            raise ValueError("Need a radius column, or atom_name/element columns for radius lookup")
        elements = df[elem_col].astype(str).str.strip().str.upper().tolist() if elem_col else None
        if radius_provider is None:
            # Bondi table is keyed by element symbol
            provider = VdwRadiusProvider.bondi()
            names = elements if elements is not None else [n[:1].upper() for n in atom_names]
            radii = provider.radii_for_atoms(names, [GENERIC_RESIDUE] * len(df))
        else:
            names = atom_names if atom_names is not None else elements
            radii = radius_provider.radii_for_atoms(
                names,
                res_names if res_names is not None else [GENERIC_RESIDUE] * len(df),
                elements,
            )
        logger.info(f"Assigned van der Waals radii by lookup for {len(radii)} atoms")

    return AtomSet(
        positions=df[['x', 'y', 'z']].to_numpy(dtype=np.float64),
        radii=radii,
        atom_names=atom_names,
        res_names=res_names,
        res_ids=df[resid_col].to_numpy() if resid_col else None,
    )


def format_pore_pdb_line(serial: int, position: np.ndarray, radius: float) -> str:
    """One HETATM record for a pore centre point."""
    x, y, z = position
    return (
        f"HETATM{serial:5d} {'PORE':<4} POR X{serial % 10000:4d}    "
        f"{x:8.3f}{y:8.3f}{z:8.3f}{radius:6.2f}{radius:6.2f}          XX\n"
    )


def write_path_pdb(path: PathLike, points: np.ndarray, radii: np.ndarray) -> None:
    """
    Write pore centre points as PDB HETATM records.

    Args:
        path: Output path
        points: (M, 3) centre line positions
        radii: (M,) pore radii
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    radii = np.asarray(radii, dtype=np.float64).reshape(-1)

    with open(path, 'w') as f:
        for i, (p, r) in enumerate(zip(points, radii), start=1):
            f.write(format_pore_pdb_line(i, p, r))
        f.write("END\n")

    logger.info(f"Saved pore PDB: {path} ({len(points)} points)")


def build_pore_surface(
    points: np.ndarray,
    radii: np.ndarray,
    tangents: np.ndarray,
    n_ring: int = 24
) -> trimesh.Trimesh:
    """
    Build an open tube mesh around a pore centre line.

    Args:
        points: (M, 3) centre line positions, M >= 2
        radii: (M,) tube radius per ring (negative radii are clamped to 0)
        tangents: (M, 3) unit tangents of the centre line
        n_ring: Vertices per ring

    Returns:
        Trimesh tube with M * n_ring vertices
    """
    # local import: frame lives in path_finding, which itself imports common
    from ..path_finding.frame import DirectionFrame

    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    radii = np.clip(np.asarray(radii, dtype=np.float64).reshape(-1), 0.0, None)
    tangents = np.asarray(tangents, dtype=np.float64).reshape(-1, 3)
    n = len(points)
    if n < 2:
        raise ValueError("Need at least 2 centre line points for a surface")
    if n_ring < 3:
        raise ValueError(f"n_ring must be >= 3, got {n_ring}")

    # shared reference vector keeps rings from twisting
    overall = points[-1] - points[0]
    if np.linalg.norm(overall) == 0:
        overall = tangents[0]
    reference = DirectionFrame.from_direction(overall).u

    angles = 2 * np.pi * np.arange(n_ring) / n_ring
    vertices = np.empty((n * n_ring, 3))
    for i in range(n):
        t = tangents[i] / np.linalg.norm(tangents[i])
        # strongly bent paths may turn parallel to the shared reference
        ref = reference if np.linalg.norm(np.cross(t, reference)) > 1e-6 else None
        frame = DirectionFrame.from_direction(t, reference=ref)
        ring = np.outer(np.cos(angles), frame.u) + np.outer(np.sin(angles), frame.w)
        vertices[i * n_ring:(i + 1) * n_ring] = points[i] + radii[i] * ring

    faces = []
    for i in range(n - 1):
        for k in range(n_ring):
            a = i * n_ring + k
            b = i * n_ring + (k + 1) % n_ring
            c = a + n_ring
            d = b + n_ring
            faces.append([a, b, d])
            faces.append([a, d, c])

    mesh = trimesh.Trimesh(vertices=vertices, faces=np.array(faces, dtype=np.int64), process=False)
    logger.info(f"Built pore surface: {len(mesh.vertices)} vertices, {len(mesh.faces)} faces")
    return mesh


def save_pore_surface(
    mesh: trimesh.Trimesh,
    path: PathLike,
    metadata: Optional[Dict[str, Any]] = None
) -> None:
    """
    Save pore surface mesh with optional metadata sidecar.

    Args:
        mesh: Trimesh mesh object
        path: Output path; format from suffix (.obj, .ply, .glb, ...)
        metadata: Saved as .json next to the mesh if given
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mesh.export(str(path))
    logger.info(f"Saved mesh: {path} ({len(mesh.vertices)} verts, {len(mesh.faces)} tris)")

    if metadata is not None:
        meta_path = path.with_suffix('.json')
        with open(meta_path, 'w') as f:
            json.dump(metadata, f, indent=2)
        logger.info(f"Saved metadata: {meta_path}")


def save_profile_json(
    path: PathLike,
    profile: Dict[str, Any],
    summary: Optional[Dict[str, Any]] = None
) -> None:
    """Save a sampled path profile (PathProfile.to_dict()) and summary to JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump({"summary": summary or {}, "profile": profile}, f, indent=2)
    logger.info(f"Saved profile: {path}")
