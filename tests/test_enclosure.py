"""Tests for the brick-ring enclosure detector."""

import math
import subprocess
import sys

import numpy as np
import pygame
import pytest

from conftest import CELL, cell_center, ring_cells
from ring_of_cinders.enclosure import (
    ENCLOSED,
    OCCUPIED,
    REACHABLE,
    EnclosureDetector,
)


def random_bricks(rng, detector, count):
    """Brick centres jittered inside random cells of the detector's grid."""
    xs = rng.integers(0, detector.grid_width, size=count)
    ys = rng.integers(0, detector.grid_height, size=count)
    jitter = rng.uniform(0, CELL, size=(count, 2))
    return [(float(x * CELL + jx), float(y * CELL + jy)) for x, y, (jx, jy) in zip(xs, ys, jitter)]


def test_grid_dimensions_round_up():
    detector = EnclosureDetector(800, 600)
    assert detector.grid_dimensions() == {"width": 25, "height": 19, "cell_size": 32}

    small = EnclosureDetector(100, 50, cell_size=32)
    assert (small.grid_width, small.grid_height) == (4, 2)


@pytest.mark.parametrize("cell_size", [0, -32])
def test_rejects_non_positive_cell_size(cell_size):
    with pytest.raises(ValueError):
        EnclosureDetector(800, 600, cell_size)


def test_empty_input_has_no_enclosure(detector):
    result = detector.detect([])
    assert result.has_enclosure is False
    assert result.enclosed_cells == []
    assert result.enclosure_boundary == []


def test_closed_ring_encloses_interior(detector):
    ring = ring_cells(5, 5, 10, 10)
    assert len(ring) == 20
    bricks = [cell_center(x, y) for x, y in ring]

    result = detector.detect(bricks)

    assert result.has_enclosure is True
    expected = [cell_center(x, y) for y in range(6, 10) for x in range(6, 10)]
    assert result.enclosed_cells == expected
    assert len(result.enclosed_cells) == 16
    assert result.enclosed_cells[0] == (6 * 32 + 16, 6 * 32 + 16)


def test_ring_boundary_skips_corner_bricks(detector):
    ring = ring_cells(5, 5, 10, 10)
    bricks = [cell_center(x, y) for x, y in ring]
    corners = {(5, 5), (10, 5), (5, 10), (10, 10)}

    result = detector.detect(bricks)

    # Corners only touch the interior diagonally
    expected = [cell_center(x, y) for x, y in ring if (x, y) not in corners]
    assert result.enclosure_boundary == expected


def test_broken_ring_has_no_enclosure(detector):
    ring = [c for c in ring_cells(5, 5, 10, 10) if c != (7, 5)]
    result = detector.detect([cell_center(x, y) for x, y in ring])

    assert result.has_enclosure is False
    assert result.enclosed_cells == []
    assert result.enclosure_boundary == []


def test_plus_of_four_bricks_seals_one_cell(detector):
    bricks = [cell_center(2, 1), cell_center(2, 3), cell_center(1, 2), cell_center(3, 2)]
    result = detector.detect(bricks)

    assert result.enclosed_cells == [cell_center(2, 2)]
    assert result.enclosure_boundary == bricks


def test_out_of_bounds_bricks_are_ignored(detector):
    ring = [cell_center(x, y) for x, y in ring_cells(5, 5, 10, 10)]
    outside = [(-5, 100), (800, 10), (10, 600), (-40, -40), (5000, 5000)]

    baseline = detector.detect(ring)
    with_outside = detector.detect(outside + ring + outside)

    assert with_outside == baseline
    assert detector.detect(outside) == detector.detect([])


@pytest.mark.parametrize("bad", [
    (math.inf, 80.0),
    (-math.inf, 80.0),
    (math.nan, 80.0),
    (80.0, math.inf),
    (80.0, -math.inf),
    (80.0, math.nan),
    (math.nan, math.inf),
])
def test_non_finite_bricks_are_ignored(detector, bad):
    plus = [cell_center(2, 1), cell_center(2, 3), cell_center(1, 2), cell_center(3, 2)]

    assert detector.detect([bad]) == detector.detect([])
    sealed = detector.detect(plus)
    assert detector.detect([bad] + plus + [bad]) == sealed
    assert sealed.enclosed_cells == [cell_center(2, 2)]


def test_bricks_on_field_edge_do_not_trap_anything(detector):
    # A line along the top rim: every free cell still touches the rim
    bricks = [cell_center(x, 0) for x in range(25)]
    result = detector.detect(bricks)
    assert result.has_enclosure is False


def test_isolated_brick_inside_enclosure_is_not_boundary(detector):
    ring = [cell_center(x, y) for x, y in ring_cells(5, 5, 11, 11)]
    centre = cell_center(8, 8)
    plus = [cell_center(8, 7), cell_center(8, 9), cell_center(7, 8), cell_center(9, 8)]

    result = detector.detect(ring + [centre] + plus)

    assert result.has_enclosure is True
    assert centre not in result.enclosure_boundary
    for brick in plus:
        assert brick in result.enclosure_boundary


def test_bricks_sharing_a_cell_are_reported_once(detector):
    bricks = [cell_center(x, y) for x, y in ring_cells(5, 5, 10, 10)]
    first = bricks[1]
    twin = (first[0] + 5, first[1] - 5)  # same cell, different point

    result = detector.detect(bricks + [twin])

    assert result.enclosure_boundary.count(first) == 1
    assert twin not in result.enclosure_boundary
    assert len(result.enclosure_boundary) == 16


def test_boundary_returns_the_callers_position_objects(detector):
    bricks = [pygame.Vector2(cell_center(x, y)) for x, y in ring_cells(5, 5, 10, 10)]
    result = detector.detect(bricks)

    assert result.enclosure_boundary
    for pos in result.enclosure_boundary:
        assert any(pos is b for b in bricks)


def test_single_row_grid():
    detector = EnclosureDetector(100, 20)
    assert detector.grid_dimensions()["height"] == 1
    result = detector.detect([cell_center(1, 0), cell_center(3, 0)])
    assert result.has_enclosure is False


def test_zero_sized_field():
    detector = EnclosureDetector(0, 0)
    assert detector.detect([(0, 0)]).has_enclosure is False


def test_classify_partitions_every_cell(detector):
    rng = np.random.default_rng(7)
    for _ in range(25):
        bricks = random_bricks(rng, detector, int(rng.integers(0, 200)))
        states = detector.classify(bricks)

        occupied = {detector.world_to_grid(x, y) for x, y in bricks}
        assert states.shape == (19, 25)
        assert set(np.unique(states)) <= {OCCUPIED, REACHABLE, ENCLOSED}
        for (gx, gy) in occupied:
            assert states[gy, gx] == OCCUPIED
        assert int(np.sum(states == OCCUPIED)) == len(occupied)

        result = detector.detect(bricks)
        enclosed = {detector.world_to_grid(x, y) for x, y in result.enclosed_cells}
        assert enclosed == {(int(x), int(y)) for y, x in np.argwhere(states == ENCLOSED)}


def test_reachable_and_enclosed_cells_never_touch(detector):
    rng = np.random.default_rng(11)
    h, w = detector.grid_height, detector.grid_width
    for _ in range(25):
        states = detector.classify(random_bricks(rng, detector, 150))
        for y in range(h):
            for x in range(w):
                if states[y, x] != ENCLOSED:
                    continue
                assert 0 < x < w - 1 and 0 < y < h - 1
                for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0)):
                    assert states[y + dy, x + dx] != REACHABLE


def test_detect_ignores_input_order(detector):
    rng = np.random.default_rng(3)
    ring = [cell_center(x, y) for x, y in ring_cells(3, 3, 12, 9)]
    bricks = ring + random_bricks(rng, detector, 40)

    first = detector.detect(bricks)
    shuffled = list(bricks)
    rng.shuffle(shuffled)
    second = detector.detect(shuffled)

    assert first.has_enclosure == second.has_enclosure
    assert set(first.enclosed_cells) == set(second.enclosed_cells)
    assert detector.detect(bricks) == first


def test_adding_bricks_never_frees_enclosed_cells(detector):
    rng = np.random.default_rng(5)
    for _ in range(20):
        base = random_bricks(rng, detector, 120)
        grown = base + random_bricks(rng, detector, 40)

        before = set(detector.detect(base).enclosed_cells)
        after = set(detector.detect(grown).enclosed_cells)
        occupied_after = {
            detector.grid_to_world(*detector.world_to_grid(x, y)) for x, y in grown
        }
        assert before <= after | occupied_after


def test_boundary_bricks_touch_an_enclosed_cell(detector):
    rng = np.random.default_rng(13)
    for _ in range(20):
        # One brick per cell so every brick is eligible for the boundary
        bricks = list({detector.world_to_grid(x, y): (x, y) for x, y in random_bricks(rng, detector, 160)}.values())
        result = detector.detect(bricks)
        enclosed = {detector.world_to_grid(x, y) for x, y in result.enclosed_cells}

        for x, y in bricks:
            gx, gy = detector.world_to_grid(x, y)
            touches = any((gx + dx, gy + dy) in enclosed for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0)))
            assert touches == ((x, y) in result.enclosure_boundary)


def test_coordinate_helpers(detector):
    assert detector.world_to_grid(0, 0) == (0, 0)
    assert detector.world_to_grid(31.9, 32) == (0, 1)
    assert detector.world_to_grid(-0.5, 10) == (-1, 0)
    assert detector.grid_to_world(2, 3) == (80, 112)
    assert detector.in_bounds(24, 18)
    assert not detector.in_bounds(25, 0)
    assert not detector.in_bounds(0, -1)


def test_detector_imports_without_pygame():
    code = (
        "import sys, ring_of_cinders, ring_of_cinders.enclosure\n"
        "assert 'pygame' not in sys.modules and 'gymnasium' not in sys.modules\n"
        "assert ring_of_cinders.GameEnv.__name__ == 'GameEnv'\n"
        "assert 'pygame' in sys.modules\n"
    )
    subprocess.run([sys.executable, "-c", code], check=True)
