"""Persisted player settings.

Settings are an explicit object handed to the environment; nothing is read
from or written to disk unless ``Settings.load`` / ``Settings.save`` is called.
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

DIFFICULTY_CONFIG = {
    'easy': {'spawn_interval_mult': 1.5, 'anthill_hp_mult': 0.7},
    'normal': {'spawn_interval_mult': 1.0, 'anthill_hp_mult': 1.0},
    'hard': {'spawn_interval_mult': 0.7, 'anthill_hp_mult': 1.5},
}

DEFAULT_SETTINGS_PATH = os.path.join(os.path.expanduser("~"), ".ring_of_cinders", "settings.json")


class Settings:
    def __init__(self, difficulty='normal', tutorial_shown=False, path=None):
        if difficulty not in DIFFICULTY_CONFIG:
            raise ValueError(f"Unknown difficulty: {difficulty!r}")
        self.difficulty = difficulty
        self.tutorial_shown = tutorial_shown
        self.path = path

    @classmethod
    def load(cls, path=DEFAULT_SETTINGS_PATH):
        """Read settings from ``path``; a missing or unreadable file gives defaults."""
        settings = cls(path=path)
        if not os.path.exists(path):
            return settings

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read settings from %s: %s", path, e)
            return settings

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed settings file %s", path)
            return settings

        difficulty = data.get('difficulty', 'normal')
        if isinstance(difficulty, str) and difficulty in DIFFICULTY_CONFIG:
            settings.difficulty = difficulty
        else:
            logger.warning("Unknown difficulty %r in %s, using 'normal'", difficulty, path)
        tutorial_shown = data.get('tutorial_shown', False)
        if isinstance(tutorial_shown, bool):
            settings.tutorial_shown = tutorial_shown
        else:
            logger.warning("Invalid tutorial_shown %r in %s, using False", tutorial_shown, path)
        return settings

    def save(self):
        """Write settings back to the file they came from. In-memory settings are not saved."""
        if self.path is None:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug("Saved settings to %s", self.path)

    def to_dict(self):
        return {
            'difficulty': self.difficulty,
            'tutorial_shown': self.tutorial_shown,
        }

    def difficulty_config(self):
        return DIFFICULTY_CONFIG[self.difficulty]
