"""
Tests for the uniform-grid spatial index.

Verifies:
- Round trip insert -> query -> remove -> query
- No false negatives against brute force (grid and cKDTree backends)
- Re-bucketing on update
- Non-finite input yields empty results instead of errors
"""

import numpy as np
import pytest

from colony.spatial_index import SpatialIndex


class Dot:
    """Minimal entity with a position"""
    def __init__(self, x, y, name=""):
        self.position = np.array([x, y], dtype=np.float64)
        self.name = name


def brute_force(dots, point, radius):
    point = np.asarray(point, dtype=np.float64)
    hits = []
    for d in dots:
        diff = d.position - point
        if np.dot(diff, diff) <= radius * radius:
            hits.append(d)
    return hits


@pytest.mark.parametrize("use_ckdtree", [False, True])
def test_round_trip(use_ckdtree):
    """Entity is found after insert and gone after remove"""
    index = SpatialIndex(cell_size=50.0, use_ckdtree=use_ckdtree)
    dot = Dot(120.0, 80.0)

    assert index.insert(dot)
    assert dot in index
    assert dot in index.query_radius([125.0, 80.0], 10.0)

    assert index.remove(dot)
    assert dot not in index
    assert index.query_radius([125.0, 80.0], 10.0) == []
    assert not index.remove(dot), "Second remove should report not registered"

    print(f"[OK] Round trip (use_ckdtree={use_ckdtree})")


@pytest.mark.parametrize("use_ckdtree", [False, True])
def test_no_false_negatives(use_ckdtree):
    """Every entity within true distance <= r is returned"""
    rng = np.random.default_rng(7)
    dots = [Dot(*rng.uniform(0.0, 800.0, size=2), name=str(i)) for i in range(400)]

    index = SpatialIndex(cell_size=50.0, use_ckdtree=use_ckdtree)
    for d in dots:
        index.insert(d)

    for _ in range(50):
        point = rng.uniform(-50.0, 850.0, size=2)
        radius = rng.uniform(0.0, 200.0)
        expected = {id(d) for d in brute_force(dots, point, radius)}
        found = {id(d) for d in index.query_radius(point, radius)}
        assert expected <= found, f"Missing {len(expected - found)} entities at r={radius:.1f}"

    print(f"[OK] No false negatives over 50 queries (use_ckdtree={use_ckdtree})")


def test_superset_mode_contains_exact_results():
    """exact=False over-returns cell candidates but never misses"""
    index = SpatialIndex(cell_size=50.0)
    dots = [Dot(10.0 * i, 10.0 * i) for i in range(30)]
    for d in dots:
        index.insert(d)

    exact = {id(d) for d in index.query_radius([100.0, 100.0], 35.0)}
    loose = {id(d) for d in index.query_radius([100.0, 100.0], 35.0, exact=False)}
    assert exact <= loose
    assert len(loose) >= len(exact)


def test_update_rebuckets_entity():
    """Moving an entity across cells moves it to the new cell"""
    index = SpatialIndex(cell_size=50.0)
    dot = Dot(10.0, 10.0)
    index.insert(dot)
    assert index.cell_of(dot) == (0, 0)

    dot.position = np.array([260.0, 140.0])
    assert index.update(dot)
    assert index.cell_of(dot) == (5, 2)

    assert dot in index.query_radius([260.0, 140.0], 1.0)
    assert dot not in index.query_radius([10.0, 10.0], 5.0)
    assert len(index) == 1


def test_non_finite_query_returns_empty():
    """NaN/inf query points and radii never raise"""
    index = SpatialIndex(cell_size=50.0)
    index.insert(Dot(0.0, 0.0))

    assert index.query_radius([np.nan, 0.0], 10.0) == []
    assert index.query_radius([np.inf, 0.0], 10.0) == []
    assert index.query_radius(None, 10.0) == []
    assert index.query_radius([0.0, 0.0], np.nan) == []
    assert index.query_radius([0.0, 0.0], -1.0) == []


def test_non_finite_entity_is_not_registered():
    """Entities with invalid positions are skipped, and dropped when they go invalid"""
    index = SpatialIndex(cell_size=50.0)
    bad = Dot(np.nan, 5.0)
    assert not index.insert(bad)
    assert len(index) == 0

    dot = Dot(5.0, 5.0)
    index.insert(dot)
    dot.position = np.array([np.inf, 5.0])
    assert not index.update(dot)
    assert dot not in index


def test_negative_coordinates_and_huge_radius():
    """Cells below zero work, and a radius covering the world scans occupied cells"""
    index = SpatialIndex(cell_size=50.0)
    dots = [Dot(-120.0, -30.0), Dot(400.0, 300.0), Dot(790.0, 590.0)]
    for d in dots:
        index.insert(d)

    assert index.cell_of(dots[0]) == (-3, -1)
    found = index.query_radius([400.0, 300.0], 1.0e6)
    assert len(found) == 3


def test_ckdtree_rebuilds_after_move():
    """Tree backend sees positions after update()"""
    index = SpatialIndex(cell_size=50.0, use_ckdtree=True)
    dot = Dot(0.0, 0.0)
    index.insert(dot)
    assert dot in index.query_radius([0.0, 0.0], 1.0)

    dot.position = np.array([30.0, 0.0])
    index.update(dot)
    assert index.query_radius([0.0, 0.0], 1.0) == []
    assert dot in index.query_radius([30.0, 0.0], 1.0)


def test_clear_and_rebuild():
    index = SpatialIndex()
    dots = [Dot(i, i) for i in range(10)]
    index.rebuild(dots)
    assert len(index) == 10
    index.rebuild(dots[:3])
    assert len(index) == 3
    index.clear()
    assert len(index) == 0
    assert index.entities() == []
