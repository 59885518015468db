"""
Quest Forge - A dialogue and quest state engine for tile-grid adventure games
"""

__version__ = "0.1.0"

from .engine import DatasetLoader, DialogSystem, WorldState

__all__ = ["DialogSystem", "DatasetLoader", "WorldState"]
