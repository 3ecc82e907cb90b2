"""
Tests for van der Waals radius lookup.
"""

import json
import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from porepath.common.errors import ConfigurationError
from porepath.common.vdw_radii import VdwRadiusProvider, VdwRadiusRecord, BONDI_RADII


# ============== Fixtures ==============

@pytest.fixture
def radius_doc():
    return {
        "vdwradii": [
            {"atomname": "CA", "resname": "ALA", "vdwr": 1.90},
            {"atomname": "CA", "resname": "???", "vdwr": 1.85},
            {"atomname": "CB", "resname": "ALA", "vdwr": 1.95},
            {"atomname": "C", "resname": "???", "vdwr": 1.70},
        ]
    }


@pytest.fixture
def provider(radius_doc):
    return VdwRadiusProvider.from_json(radius_doc, default_radius=1.0)


# ============== Lookup Tests ==============

class TestLookup:
    """Tests for the lookup order."""

    def test_exact_residue(self, provider):
        assert provider.radius_for_atom("CA", "ALA") == 1.90

    def test_generic_residue(self, provider):
        assert provider.radius_for_atom("CA", "GLY") == 1.85

    def test_name_hit_without_residue_hit_uses_default(self, provider):
        assert provider.radius_for_atom("CB", "GLY", element="C") == 1.0

    def test_element_fallback(self, provider):
        assert provider.radius_for_atom("CX", "GLY", element=" c") == 1.70

    def test_default_radius(self, provider):
        assert provider.radius_for_atom("ZZ", "GLY") == 1.0

    def test_no_default_raises(self, radius_doc):
        provider = VdwRadiusProvider.from_json(radius_doc)
        with pytest.raises(KeyError):
            provider.radius_for_atom("ZZ", "GLY")

    def test_radii_for_atoms(self, provider):
        radii = provider.radii_for_atoms(["CA", "CA", "ZZ"], ["ALA", "GLY", "GLY"])
        np.testing.assert_allclose(radii, [1.90, 1.85, 1.0])

    def test_set_default_radius(self, radius_doc):
        provider = VdwRadiusProvider.from_json(radius_doc)
        provider.set_default_radius(2.5)
        assert provider.radius_for_atom("ZZ", "GLY") == 2.5

    def test_negative_default_rejected(self, provider):
        with pytest.raises(ConfigurationError):
            provider.set_default_radius(-1.0)

    def test_bondi(self):
        provider = VdwRadiusProvider.bondi()
        assert provider.radius_for_atom("N", "ANY") == BONDI_RADII["N"]
        assert provider.radius_for_atom("XX", "ANY") == 1.70

    def test_records(self):
        provider = VdwRadiusProvider([VdwRadiusRecord("OW", "SOL", 1.6)])
        assert provider.radius_for_atom("OW", "SOL") == 1.6


# ============== JSON Tests ==============

class TestFromJson:
    """Tests for parsing radius tables."""

    def test_from_file(self, tmp_path, radius_doc):
        path = tmp_path / "radii.json"
        path.write_text(json.dumps(radius_doc))
        provider = VdwRadiusProvider.from_json(path)
        assert len(provider.records) == 4

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "radii.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError, match="No valid JSON object"):
            VdwRadiusProvider.from_json(path)

    def test_missing_array(self):
        with pytest.raises(ValueError, match="vdwradii array"):
            VdwRadiusProvider.from_json({"radii": []})

    @pytest.mark.parametrize("entry,field", [
        ({"resname": "ALA", "vdwr": 1.0}, "atomname"),
        ({"atomname": "CA", "resname": 5, "vdwr": 1.0}, "resname"),
        ({"atomname": "CA", "resname": "ALA", "vdwr": "1.0"}, "vdwr"),
        ({"atomname": "CA", "resname": "ALA", "vdwr": True}, "vdwr"),
    ])
    def test_malformed_record(self, entry, field):
        with pytest.raises(ValueError, match=field):
            VdwRadiusProvider.from_json({"vdwradii": [entry]})

    def test_integer_radius_accepted(self):
        provider = VdwRadiusProvider.from_json({"vdwradii": [{"atomname": "X", "resname": "???", "vdwr": 2}]})
        assert provider.radius_for_atom("X", "ANY") == 2.0
