"""Enclosure detection for the brick grid.

Bricks are snapped onto a fixed grid laid over the play field. A flood fill
from every free cell on the grid rim marks what the outside can reach; any
free cell left unmarked is sealed inside a ring of bricks.
"""

import math
from collections import deque, namedtuple

import numpy as np


EnclosureResult = namedtuple(
    "EnclosureResult", ["has_enclosure", "enclosed_cells", "enclosure_boundary"]
)

# Cell states returned by EnclosureDetector.classify()
OCCUPIED = 0
REACHABLE = 1
ENCLOSED = 2

# up, down, left, right
DIRECTIONS = ((0, -1), (0, 1), (-1, 0), (1, 0))


class EnclosureDetector:
    def __init__(self, width, height, cell_size=32):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        if width < 0 or height < 0:
            raise ValueError(f"field size must be non-negative, got {width}x{height}")

        self._cell_size = cell_size
        self._grid_width = math.ceil(width / cell_size)
        self._grid_height = math.ceil(height / cell_size)

    @property
    def grid_width(self):
        return self._grid_width

    @property
    def grid_height(self):
        return self._grid_height

    @property
    def cell_size(self):
        return self._cell_size

    def grid_dimensions(self):
        """Grid size in cells plus the cell edge length, for debugging."""
        return {
            "width": self._grid_width,
            "height": self._grid_height,
            "cell_size": self._cell_size,
        }

    def world_to_grid(self, x, y):
        return int(x // self._cell_size), int(y // self._cell_size)

    def grid_to_world(self, gx, gy):
        half = self._cell_size / 2
        return gx * self._cell_size + half, gy * self._cell_size + half

    def in_bounds(self, gx, gy):
        return 0 <= gx < self._grid_width and 0 <= gy < self._grid_height

    def _cell_of(self, pos):
        """Grid cell holding ``pos``, or None if it is off the grid or not finite."""
        if not (math.isfinite(pos[0]) and math.isfinite(pos[1])):
            return None
        cell = self.world_to_grid(pos[0], pos[1])
        return cell if self.in_bounds(*cell) else None

    def _occupancy(self, positions):
        occupied = np.zeros((self._grid_height, self._grid_width), dtype=bool)
        for pos in positions:
            cell = self._cell_of(pos)
            if cell is not None:
                gx, gy = cell
                occupied[gy, gx] = True
        return occupied

    def _rim_cells(self):
        w, h = self._grid_width, self._grid_height
        if w == 0 or h == 0:
            return
        for x in range(w):
            yield x, 0
            if h > 1:
                yield x, h - 1
        for y in range(1, h - 1):
            yield 0, y
            if w > 1:
                yield w - 1, y

    def _flood_from_rim(self, occupied):
        visited = np.zeros_like(occupied)
        reachable = np.zeros_like(occupied)
        queue = deque()

        for x, y in self._rim_cells():
            if not occupied[y, x] and not visited[y, x]:
                visited[y, x] = True
                queue.append((x, y))

        while queue:
            x, y = queue.popleft()
            reachable[y, x] = True
            for dx, dy in DIRECTIONS:
                nx, ny = x + dx, y + dy
                if not self.in_bounds(nx, ny):
                    continue
                if visited[ny, nx] or occupied[ny, nx]:
                    continue
                # Marked on enqueue so no cell enters the queue twice
                visited[ny, nx] = True
                queue.append((nx, ny))

        return reachable

    def classify(self, positions):
        """Return a (grid_height, grid_width) array of OCCUPIED/REACHABLE/ENCLOSED codes."""
        occupied = self._occupancy(positions)
        reachable = self._flood_from_rim(occupied)

        states = np.full(occupied.shape, ENCLOSED, dtype=np.int8)
        states[reachable] = REACHABLE
        states[occupied] = OCCUPIED
        return states

    def detect(self, positions):
        """Find floor cells sealed off from the field edge by bricks.

        ``positions`` is a sequence of brick centres; anything indexable as
        ``pos[0], pos[1]`` works (tuples, lists, pygame.Vector2). Bricks that
        land outside the grid, or at non-finite coordinates, are ignored.

        Returns an ``EnclosureResult``: ``enclosed_cells`` holds the centre of
        every sealed cell in row-major order, ``enclosure_boundary`` holds the
        input positions of the bricks touching at least one sealed cell.
        """
        positions = list(positions)
        states = self.classify(positions)
        enclosed = states == ENCLOSED

        # argwhere walks the [y, x] array in row-major order
        enclosed_cells = [
            self.grid_to_world(int(gx), int(gy)) for gy, gx in np.argwhere(enclosed)
        ]

        enclosure_boundary = []
        if enclosed_cells:
            reported = set()
            for pos in positions:
                cell = self._cell_of(pos)
                if cell is None or cell in reported:
                    continue
                gx, gy = cell
                for dx, dy in DIRECTIONS:
                    nx, ny = gx + dx, gy + dy
                    if self.in_bounds(nx, ny) and enclosed[ny, nx]:
                        enclosure_boundary.append(pos)
                        reported.add(cell)
                        break

        return EnclosureResult(
            has_enclosure=len(enclosed_cells) > 0,
            enclosed_cells=enclosed_cells,
            enclosure_boundary=enclosure_boundary,
        )
