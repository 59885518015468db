"""
World state: variables, flags and inventory shared by every dialogue
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

import jsonschema

from .model import Condition, Effect, Number

SNAPSHOT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "variables": {"type": "object", "additionalProperties": {"type": "number"}},
        "flags": {"type": "array", "items": {"type": "string"}},
        "inventory": {
            "type": "object",
            "additionalProperties": {"type": "integer", "minimum": 0},
        },
    },
    "required": ["variables", "flags", "inventory"],
}


@dataclass
class WorldState:
    """Tracks game state including variables, flags and inventory"""

    variables: Dict[str, Number] = field(default_factory=dict)
    flags: Set[str] = field(default_factory=set)
    inventory: Dict[str, int] = field(default_factory=dict)

    def get(self, name: str) -> Number:
        """Current value of a variable, 0 when unset"""
        return self.variables.get(name, 0)

    def count(self, item: str) -> int:
        return self.inventory.get(item, 0)

    def check(self, condition: Optional[Condition]) -> bool:
        """
        Evaluate a condition against this state.

        A missing condition always passes. Otherwise variable checks, required
        flags, forbidden flags and required items must all pass.
        """
        if condition is None:
            return True

        for name, check in condition.variables.items():
            if not check.matches(self.get(name)):
                return False

        if any(flag not in self.flags for flag in condition.flags):
            return False

        if any(flag in self.flags for flag in condition.not_flags):
            return False

        if any(self.count(item) <= 0 for item in condition.items):
            return False

        return True

    def apply(self, effect: Optional[Effect]):
        """Apply an effect: variables, then added flags, removed flags, items"""
        if effect is None:
            return

        for name, change in effect.variables.items():
            self.variables[name] = change.apply(self.get(name))

        self.flags.update(effect.flags)
        self.flags.difference_update(effect.remove_flags)

        # counts are floored at zero
        for item, delta in effect.items.items():
            self.inventory[item] = max(0, self.count(item) + delta)

    def copy(self) -> "WorldState":
        """Create a deep copy of the state"""
        return WorldState(
            variables=dict(self.variables),
            flags=set(self.flags),
            inventory=dict(self.inventory),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to JSON-serializable dict"""
        return {
            "variables": dict(self.variables),
            "flags": sorted(self.flags),
            "inventory": dict(self.inventory),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorldState":
        """
        Build a state from a snapshot produced by to_dict().

        Raises:
            jsonschema.ValidationError: if the snapshot does not match SNAPSHOT_SCHEMA
        """
        jsonschema.validate(instance=data, schema=SNAPSHOT_SCHEMA)
        return cls(
            variables=dict(data["variables"]),
            flags=set(data["flags"]),
            inventory={item: int(n) for item, n in data["inventory"].items()},
        )
