import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import pytest

from ring_of_cinders.enclosure import EnclosureDetector
from ring_of_cinders.game import GameEnv
from ring_of_cinders.settings import Settings


CELL = 32


def cell_center(x, y, cell_size=CELL):
    return (x * cell_size + cell_size / 2, y * cell_size + cell_size / 2)


def ring_cells(x0, y0, x1, y1):
    """Perimeter cells of the rectangle (x0, y0)-(x1, y1), row-major."""
    return [
        (x, y)
        for y in range(y0, y1 + 1)
        for x in range(x0, x1 + 1)
        if x in (x0, x1) or y in (y0, y1)
    ]


@pytest.fixture
def detector():
    return EnclosureDetector(800, 600, CELL)


@pytest.fixture
def env():
    game = GameEnv(settings=Settings())
    game.reset(seed=0)
    yield game
    game.close()
