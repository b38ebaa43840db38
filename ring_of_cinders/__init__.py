"""Ring of Cinders: seal anthills inside rings of bricks and let the furnace do the rest."""

from ring_of_cinders.enclosure import ENCLOSED, OCCUPIED, REACHABLE, EnclosureDetector, EnclosureResult
from ring_of_cinders.settings import DIFFICULTY_CONFIG, Settings

__all__ = [
    "ENCLOSED",
    "OCCUPIED",
    "REACHABLE",
    "EnclosureDetector",
    "EnclosureResult",
    "GameEnv",
    "DIFFICULTY_CONFIG",
    "Settings",
]


def __getattr__(name):
    # The game pulls in pygame and gymnasium; only load it when asked for
    if name == "GameEnv":
        from ring_of_cinders.game import GameEnv
        return GameEnv
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
