"""
Tests for clearance evaluation and void radius maximisation.

Tests cover:
- Clearance of single atoms, cutoff capping, empty neighbourhoods
- In-plane maximisation inside a ring of atoms
- Direction frames
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from porepath.common.atoms import AtomSet
from porepath.common.config import AnnealingConfig
from porepath.common.errors import ConfigurationError
from porepath.common.neighbors import KDTreeNeighborSearch
from porepath.optimization.annealing import OptimizationStatus
from porepath.path_finding.frame import DirectionFrame
from porepath.path_finding.void_radius import PathPoint, VoidRadiusEvaluator, clearance


# ============== Fixtures ==============

@pytest.fixture
def single_atom():
    return KDTreeNeighborSearch(AtomSet(positions=[[0.0, 0.0, 0.0]], radii=[1.0]))


@pytest.fixture
def empty_search():
    return KDTreeNeighborSearch(AtomSet(positions=np.empty((0, 3)), radii=np.empty(0)))


@pytest.fixture
def ring_search():
    """12 atoms of radius 1 on a circle of radius 3 in the z=0 plane."""
    angles = 2 * np.pi * np.arange(12) / 12
    positions = np.column_stack([3 * np.cos(angles), 3 * np.sin(angles), np.zeros(12)])
    return KDTreeNeighborSearch(AtomSet(positions=positions, radii=np.ones(12)))


# ============== Clearance Tests ==============

class TestClearance:
    """Tests for the free radius at a point."""

    def test_single_atom(self, single_atom):
        assert clearance(np.array([3.0, 0.0, 0.0]), single_atom, 5.0) == pytest.approx(2.0)

    def test_inside_atom_is_negative(self, single_atom):
        assert clearance(np.array([0.5, 0.0, 0.0]), single_atom, 5.0) == pytest.approx(-0.5)

    def test_beyond_cutoff_returns_cutoff(self, single_atom):
        assert clearance(np.array([10.0, 0.0, 0.0]), single_atom, 5.0) == 5.0

    def test_empty_atoms_returns_cutoff(self, empty_search):
        assert clearance(np.zeros(3), empty_search, 4.0) == 4.0

    def test_nearest_surface_wins(self):
        atoms = AtomSet(positions=[[0, 0, 0], [5, 0, 0]], radii=[0.5, 2.0])
        search = KDTreeNeighborSearch(atoms)
        # distance 2.5 - 0.5 = 2.0 to first, 2.5 - 2.0 = 0.5 to second
        assert clearance(np.array([2.5, 0.0, 0.0]), search, 10.0) == pytest.approx(0.5)

    def test_neighbors_sorted(self, ring_search):
        idx = ring_search.neighbors(np.zeros(3), 5.0)
        np.testing.assert_array_equal(idx, np.arange(12))


# ============== Path Point Tests ==============

class TestPathPoint:
    """Tests for immutable support points."""

    def test_position_read_only(self):
        source = np.array([1.0, 2.0, 3.0])
        point = PathPoint(position=source, radius=2)
        with pytest.raises(ValueError):
            point.position[0] = 5.0
        source[0] = 9.0
        assert point.position[0] == 1.0
        assert isinstance(point.radius, float)


# ============== Maximisation Tests ==============

class TestMaximiseVoidRadius:
    """Tests for the annealing + Nelder-Mead maximisation."""

    def test_ring_centre(self, ring_search):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]))
        evaluator = VoidRadiusEvaluator(ring_search, cutoff=5.0)
        result = evaluator.maximise_void_radius(np.array([0.4, -0.3, 0.0]), frame)

        np.testing.assert_allclose(result.point.position[:2], [0.0, 0.0], atol=0.05)
        assert result.point.radius == pytest.approx(2.0, abs=0.02)

    def test_stays_in_plane(self, ring_search):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]))
        evaluator = VoidRadiusEvaluator(ring_search, cutoff=5.0)
        result = evaluator.maximise_void_radius(np.array([0.2, 0.1, 0.7]), frame)
        assert result.point.position[2] == pytest.approx(0.7, abs=1e-12)

    def test_radius_matches_clearance(self, ring_search):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]))
        evaluator = VoidRadiusEvaluator(ring_search, cutoff=5.0)
        result = evaluator.maximise_void_radius(np.array([0.5, 0.5, 0.0]), frame)
        assert result.point.radius == pytest.approx(evaluator.clearance(result.point.position))

    def test_never_worse_than_seed(self, ring_search):
        evaluator = VoidRadiusEvaluator(ring_search, cutoff=5.0)
        seed = np.array([1.0, 0.5, 0.0])
        result = evaluator.maximise_void_radius(seed)
        assert result.point.radius >= evaluator.clearance(seed)
        assert result.point.position.shape == (3,)

    def test_empty_neighbourhood(self, empty_search):
        evaluator = VoidRadiusEvaluator(empty_search, cutoff=3.0)
        frame = DirectionFrame.from_direction(np.array([1.0, 0.0, 0.0]))
        result = evaluator.maximise_void_radius(np.zeros(3), frame)
        assert result.point.radius == 3.0
        assert result.status == OptimizationStatus.CONVERGED
        assert not evaluator.has_neighbors(np.zeros(3))

    def test_without_local_stage(self, ring_search):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]))
        evaluator = VoidRadiusEvaluator(ring_search, cutoff=5.0, nm_max_iter=0)
        result = evaluator.maximise_void_radius(np.array([0.3, 0.0, 0.0]), frame)
        assert not result.refined
        assert result.point.radius >= evaluator.clearance(np.array([0.3, 0.0, 0.0]))

    def test_deterministic(self, ring_search):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]))
        evaluator = VoidRadiusEvaluator(ring_search, cutoff=5.0, annealing=AnnealingConfig(seed=3))
        a = evaluator.maximise_void_radius(np.array([0.3, 0.2, 0.0]), frame)
        b = evaluator.maximise_void_radius(np.array([0.3, 0.2, 0.0]), frame)
        np.testing.assert_array_equal(a.point.position, b.point.position)

    def test_invalid_cutoff(self, ring_search):
        with pytest.raises(ConfigurationError):
            VoidRadiusEvaluator(ring_search, cutoff=0.0)


# ============== Direction Frame Tests ==============

class TestDirectionFrame:
    """Tests for orthonormal cross-section frames."""

    @pytest.mark.parametrize("direction", [
        [0.0, 0.0, 1.0],
        [1.0, 0.0, 0.0],
        [1.0, 2.0, 3.0],
        [0.0, -5.0, 0.0],
    ])
    def test_orthonormal(self, direction):
        frame = DirectionFrame.from_direction(np.array(direction))
        basis = np.vstack([frame.direction, frame.u, frame.w])
        np.testing.assert_allclose(basis @ basis.T, np.eye(3), atol=1e-12)

    def test_direction_normalised(self):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 4.0]))
        np.testing.assert_allclose(frame.direction, [0.0, 0.0, 1.0])

    def test_zero_direction(self):
        with pytest.raises(ConfigurationError):
            DirectionFrame.from_direction(np.zeros(3))

    def test_parallel_reference(self):
        with pytest.raises(ConfigurationError):
            DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]), reference=np.array([0.0, 0.0, 2.0]))

    def test_plane_to_point(self):
        frame = DirectionFrame.from_direction(np.array([0.0, 0.0, 1.0]))
        origin = np.array([1.0, 2.0, 3.0])
        point = frame.plane_to_point(origin, np.array([0.5, -0.5]))
        assert point[2] == pytest.approx(3.0)
        assert np.linalg.norm(point - origin) == pytest.approx(np.sqrt(0.5))

    def test_flipped(self):
        frame = DirectionFrame.from_direction(np.array([1.0, 1.0, 0.0]))
        flipped = frame.flipped()
        np.testing.assert_allclose(flipped.direction, -frame.direction)
        np.testing.assert_allclose(flipped.u, frame.u)
