"""
JSON save slots for world state snapshots
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class SaveError(Exception):
    """Raised when a save slot cannot be written or read"""


class SaveNotFound(SaveError):
    """Raised when a save slot does not exist"""


@dataclass
class SaveSlot:
    """A saved game: state snapshot plus the dialog that was active"""

    name: str
    timestamp: str
    node: Optional[str]
    state: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "timestamp": self.timestamp, "node": self.node, "state": self.state}


def sanitize_name(name: str) -> str:
    """Keep alphanumerics, spaces, dashes and underscores"""
    return "".join(c for c in name if c.isalnum() or c in (" ", "-", "_")).strip()


class SaveStore:
    """Directory of <name>.json save files"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        clean = sanitize_name(name)
        if not clean:
            raise SaveError(f"Invalid save name: {name!r}")
        return self.directory / f"{clean}.json"

    def save(self, name: Optional[str], state: Dict[str, Any], node: Optional[str] = None) -> SaveSlot:
        """
        Write a save slot, replacing any slot with the same name.

        Args:
            name: Slot name; a timestamp is used when empty
            state: Snapshot from DialogSystem.export_state()
            node: Id of the dialog active when saving, if any
        """
        now = datetime.now()
        if not name:
            name = now.strftime("%Y%m%d_%H%M%S")

        path = self.path_for(name)
        slot = SaveSlot(name=path.stem, timestamp=now.isoformat(), node=node, state=state)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(slot.to_dict(), f, indent=2)
        except OSError as e:
            raise SaveError(f"Cannot write save '{slot.name}': {e}") from e

        logger.info("Saved game to %s", path)
        return slot

    def load(self, name: str) -> SaveSlot:
        path = self.path_for(name)
        if not path.exists():
            raise SaveNotFound(f"No save named '{name}'")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return SaveSlot(
                name=path.stem,
                timestamp=data.get("timestamp", ""),
                node=data.get("node"),
                state=data["state"],
            )
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError, OSError) as e:
            raise SaveError(f"Corrupt save '{name}': {e}") from e

    def list_saves(self) -> List[SaveSlot]:
        """All readable save slots, oldest first; unreadable files are skipped"""
        if not self.directory.exists():
            return []

        slots = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                slots.append(self.load(path.stem))
            except SaveError as e:
                logger.warning("Skipping save file %s: %s", path.name, e)
        slots.sort(key=lambda s: s.timestamp)
        return slots

    def delete(self, name: str):
        path = self.path_for(name)
        if not path.exists():
            raise SaveNotFound(f"No save named '{name}'")
        path.unlink()
