"""
Van der Waals radius lookup.

Radii are resolved from a table of (atom name, residue name, radius) records.
Lookup order for one atom:
1. exact atom name + exact residue name
2. exact atom name + generic residue "???"
3. steps 1-2 with the upper-cased element symbol in place of the atom name
4. the default radius, if one was set

JSON format:
    {"vdwradii": [{"atomname": "CA", "resname": "???", "vdwr": 1.85}, ...]}
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

GENERIC_RESIDUE = "???"

# Bondi element radii (Angstrom)
BONDI_RADII: Dict[str, float] = {
    'H': 1.20, 'C': 1.70, 'N': 1.55, 'O': 1.52, 'F': 1.47, 'P': 1.80,
    'S': 1.80, 'CL': 1.75, 'BR': 1.85, 'I': 1.98, 'NA': 2.27, 'MG': 1.73,
    'K': 2.75, 'CA': 2.31, 'ZN': 1.39, 'FE': 1.56, 'CU': 1.40, 'MN': 1.61,
}


@dataclass(frozen=True)
class VdwRadiusRecord:
    atom_name: str
    res_name: str
    radius: float


class VdwRadiusProvider:
    """
    Resolves van der Waals radii for atoms by name.

    Without a default radius, an atom that matches no record raises KeyError.
    """

    def __init__(
        self,
        records: Optional[Sequence[VdwRadiusRecord]] = None,
        default_radius: Optional[float] = None
    ):
        self.records: List[VdwRadiusRecord] = list(records or [])
        self.default_radius: Optional[float] = None
        if default_radius is not None:
            self.set_default_radius(default_radius)

    def set_default_radius(self, radius: float) -> None:
        if radius < 0:
            raise ConfigurationError("Default van der Waals radius may not be negative.")
        self.default_radius = float(radius)

    @classmethod
    def from_json(
        cls,
        source: Union[Path, str, Dict],
        default_radius: Optional[float] = None
    ) -> "VdwRadiusProvider":
        """
        Build a provider from a JSON document.

        Args:
            source: Path to a JSON file, or an already parsed document
            default_radius: Radius for atoms without a matching record

        Returns:
            VdwRadiusProvider with the table from the document
        """
        if isinstance(source, dict):
            doc = source
        else:
            with open(source) as f:
                doc = json.load(f)

        if not isinstance(doc, dict):
            raise ValueError("No valid JSON object provided.")
        entries = doc.get("vdwradii")
        if not isinstance(entries, list):
            raise ValueError("Provided JSON does not contain vdwradii array.")

        records = []
        for entry in entries:
            if not isinstance(entry.get("atomname"), str):
                raise ValueError("No 'atomname' attribute of type 'string' in van der Waals radius record.")
            if not isinstance(entry.get("resname"), str):
                raise ValueError("No 'resname' attribute of type 'string' in van der Waals radius record.")
            vdwr = entry.get("vdwr")
            if isinstance(vdwr, bool) or not isinstance(vdwr, (int, float)):
                raise ValueError("No 'vdwr' attribute of type 'number' in van der Waals radius record.")
            records.append(VdwRadiusRecord(entry["atomname"], entry["resname"], float(vdwr)))

        logger.info(f"Loaded {len(records)} van der Waals radius records")
        return cls(records, default_radius=default_radius)

    @classmethod
    def bondi(cls, default_radius: Optional[float] = 1.70) -> "VdwRadiusProvider":
        """Element-only table of Bondi radii, valid for any residue."""
        records = [
            VdwRadiusRecord(elem, GENERIC_RESIDUE, radius)
            for elem, radius in BONDI_RADII.items()
        ]
        return cls(records, default_radius=default_radius)

    def radius_for_atom(self, atom_name: str, res_name: str, element: str = "") -> float:
        """Look up the radius of a single atom."""
        matches = self._name_matches(atom_name)
        if not matches and element:
            matches = self._name_matches(element.strip().upper())
        radius = self._residue_match(matches, res_name)
        if radius is not None:
            return radius

        if self.default_radius is None:
            raise KeyError(
                f"Could not find van der Waals radius for atom with atom name {atom_name} "
                f"and residue name {res_name} and default radius is not set."
            )
        return self.default_radius

    def radii_for_atoms(
        self,
        atom_names: Sequence[str],
        res_names: Sequence[str],
        elements: Optional[Sequence[str]] = None
    ) -> np.ndarray:
        """Vectorised convenience wrapper around radius_for_atom."""
        if elements is None:
            elements = [""] * len(atom_names)
        return np.array([
            self.radius_for_atom(a, r, e)
            for a, r, e in zip(atom_names, res_names, elements)
        ], dtype=np.float64)

    def _name_matches(self, name: str) -> List[VdwRadiusRecord]:
        return [rec for rec in self.records if rec.atom_name == name]

    @staticmethod
    def _residue_match(matches: List[VdwRadiusRecord], res_name: str) -> Optional[float]:
        # an atom name hit without a residue hit goes to the default, not the element
        for wanted in (res_name, GENERIC_RESIDUE):
            for rec in matches:
                if rec.res_name == wanted:
                    return rec.radius
        return None
