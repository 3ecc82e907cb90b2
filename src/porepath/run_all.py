#!/usr/bin/env python3
"""
porepath - Orchestrator

Find the pore path of every frame and write profiles, PDB and mesh outputs.

Usage:
    porepath --atoms frame_000.csv frame_001.csv --output outputs
    porepath --atoms protein.csv --config pathfinding.json --workers 4 -v
"""

import argparse
import json
import logging
import sys
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .common.atoms import AtomSet
from .common.config import PathFindingConfig, PathFindingMethod
from .common.errors import DegenerateResultError
from .common.io import load_atoms, write_path_pdb, build_pore_surface, save_pore_surface, save_profile_json
from .common.neighbors import KDTreeNeighborSearch
from .path_finding.finders import RawPath, create_path_finder
from .path_finding.molecular_path import MolecularPath, PathProfile

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Everything path finding produced for one frame."""
    frame: int
    raw_path: RawPath
    path: MolecularPath
    profile: PathProfile

    def summary(self) -> Dict[str, Any]:
        return {
            "frame": self.frame,
            "n_raw_points": len(self.raw_path),
            "num_unconverged": self.raw_path.num_unconverged,
            **self.path.to_dict(),
        }


def analyze_frame(atoms: AtomSet, config: PathFindingConfig, frame: int = 0) -> FrameResult:
    """
    Run the full path finding pipeline on one frame.

    Args:
        atoms: The frame's atoms
        config: Path finding configuration
        frame: Frame number, for bookkeeping only

    Returns:
        FrameResult

    Raises:
        DegenerateResultError: the frame yields no usable path
    """
    logger.info(f"\n{'='*60}")
    logger.info(f"Processing frame {frame}: {atoms.n_atoms} atoms")
    logger.info(f"{'='*60}")

    search = KDTreeNeighborSearch(atoms)
    finder = create_path_finder(search, config)
    raw_path = finder.find_path()

    path = MolecularPath.from_raw_path(raw_path, extrap_dist=config.extrap_dist)
    profile = path.resample(num_points=config.num_out_points)

    s_min, r_min = path.min_radius()
    logger.info(
        f"Frame {frame}: length {path.length():.3f}, min radius {r_min:.3f} at s={s_min:.3f}"
    )
    return FrameResult(frame=frame, raw_path=raw_path, path=path, profile=profile)


def analyze_trajectory(
    frames: Sequence[AtomSet],
    config: PathFindingConfig,
    max_workers: int = 1
) -> Tuple[List[Optional[FrameResult]], Dict[str, Any]]:
    """
    Analyse independent frames, skipping those without a usable path.

    Args:
        frames: Atom sets, one per frame
        config: Path finding configuration shared by all frames
        max_workers: Worker processes; 1 runs sequentially in-process

    Returns:
        Tuple of (per-frame results with None for skipped frames, summary)
    """
    summary: Dict[str, Any] = {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "frames": [],
        "errors": [],
    }
    results: List[Optional[FrameResult]] = [None] * len(frames)

    if max_workers > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(analyze_frame, atoms, config, i)
                for i, atoms in enumerate(frames)
            ]
            outcomes = [_collect(i, future.result) for i, future in enumerate(futures)]
    else:
        outcomes = [
            _collect(i, lambda a=atoms, i=i: analyze_frame(a, config, i))
            for i, atoms in enumerate(frames)
        ]

    for i, (result, error) in enumerate(outcomes):
        if error is not None:
            summary["frames"].append({"frame": i, "status": "skipped", "error": error})
            summary["errors"].append({"frame": i, "error": error})
        else:
            results[i] = result
            summary["frames"].append({"frame": i, "status": "success", **result.summary()})

    n_success = sum(r is not None for r in results)
    logger.info(f"Analysed {len(frames)} frames: {n_success} paths, {len(summary['errors'])} skipped")
    return results, summary


def _collect(frame: int, run) -> Tuple[Optional[FrameResult], Optional[str]]:
    try:
        return run(), None
    except DegenerateResultError as e:
        logger.warning(f"Frame {frame} skipped: {e}")
        return None, str(e)


def write_frame_outputs(result: FrameResult, output_dir: Path) -> Dict[str, str]:
    """Write profile JSON, pore PDB and surface OBJ of one frame."""
    stem = f"frame_{result.frame:04d}"
    profile = result.profile

    profile_path = output_dir / f"{stem}_profile.json"
    pdb_path = output_dir / f"{stem}_pore.pdb"
    mesh_path = output_dir / f"{stem}_surface.obj"

    save_profile_json(profile_path, profile.to_dict(), result.summary())
    write_path_pdb(pdb_path, profile.points, profile.radii)
    mesh = build_pore_surface(profile.points, profile.radii, result.path.tangent(profile.arclength))
    save_pore_surface(mesh, mesh_path)

    return {"profile": str(profile_path), "pdb": str(pdb_path), "surface": str(mesh_path)}


def main():
    parser = argparse.ArgumentParser(
        description="porepath - Find pore centre lines and radius profiles"
    )
    parser.add_argument(
        "--atoms", "-a",
        type=Path,
        nargs="+",
        required=True,
        help="Atom tables (CSV/parquet), one per frame"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path finding config JSON"
    )
    parser.add_argument(
        "--method", "-m",
        choices=[m.value for m in PathFindingMethod],
        default=None,
        help="Path finding method (overrides config)"
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Annealing random seed (overrides config)"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("outputs"),
        help="Output directory"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=1,
        help="Worker processes for frame-level parallelism"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    # Build config
    data = PathFindingConfig.from_json(args.config).to_dict() if args.config else PathFindingConfig().to_dict()
    if args.method:
        data["method"] = args.method
    if args.seed is not None:
        data["annealing"]["seed"] = args.seed
    config = PathFindingConfig.from_dict(data)

    frames = [load_atoms(p) for p in args.atoms]

    logger.info(f"Processing {len(frames)} frames with method {config.method.value}")
    logger.info(f"Output: {args.output}")

    results, summary = analyze_trajectory(frames, config, max_workers=args.workers)

    for result in results:
        if result is not None:
            outputs = write_frame_outputs(result, args.output)
            summary["frames"][result.frame]["outputs"] = outputs

    # Save summary
    summary_path = args.output / "run_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"\nSummary saved to: {summary_path}")

    n_success = sum(r is not None for r in results)
    n_errors = len(summary["errors"])

    logger.info(f"\n{'='*60}")
    logger.info(f"COMPLETE: {n_success} paths, {n_errors} frames skipped")
    logger.info(f"{'='*60}")

    if n_success == 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
