"""
Dialogue data model: characters, nodes, choices, conditions and effects
"""

import math
import operator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

Number = Union[int, float]


class Comparison(Enum):
    """Comparison operators usable in a variable condition"""

    GE = ">="
    LE = "<="
    GT = ">"
    LT = "<"
    EQ = "=="
    NE = "!="

    def test(self, current: Number, target: Number) -> bool:
        return _COMPARISONS[self](current, target)


class Mutation(Enum):
    """Assignment operators usable in a variable effect"""

    ADD = "+="
    SUB = "-="
    MUL = "*="
    DIV = "/="
    SET = "="

    def apply(self, current: Number, value: Number) -> Number:
        if self is Mutation.SET:
            return value
        try:
            return _MUTATIONS[self](current, value)
        except OverflowError:
            # an int too large for a float met float arithmetic
            return self._saturate(current, value)

    def _saturate(self, current: Number, value: Number) -> float:
        if self in (Mutation.ADD, Mutation.SUB):
            other = value if self is Mutation.ADD else -value
            dominant = current if abs(current) >= abs(other) else other
            return -math.inf if dominant < 0 else math.inf
        if self is Mutation.MUL and (current == 0 or value == 0):
            return 0.0
        if self is Mutation.DIV and abs(value) == math.inf:
            return 0.0
        return -math.inf if (current < 0) != (value < 0) else math.inf


_COMPARISONS = {
    Comparison.GE: operator.ge,
    Comparison.LE: operator.le,
    Comparison.GT: operator.gt,
    Comparison.LT: operator.lt,
    Comparison.EQ: operator.eq,
    Comparison.NE: operator.ne,
}

_MUTATIONS = {
    Mutation.ADD: operator.add,
    Mutation.SUB: operator.sub,
    Mutation.MUL: operator.mul,
    Mutation.DIV: operator.truediv,
}


@dataclass(frozen=True)
class VariableCheck:
    """A check against one variable; a bare number in the data is an == check"""

    op: Comparison
    value: Number
    literal: bool = False

    def matches(self, current: Number) -> bool:
        return self.op.test(current, self.value)

    def to_data(self) -> Any:
        if self.literal:
            return self.value
        return {"op": self.op.value, "value": self.value}


@dataclass(frozen=True)
class VariableChange:
    """A change to one variable; a bare number in the data is an assignment"""

    op: Mutation
    value: Number
    literal: bool = False

    def apply(self, current: Number) -> Number:
        return self.op.apply(current, self.value)

    def to_data(self) -> Any:
        if self.literal:
            return self.value
        return {"op": self.op.value, "value": self.value}


@dataclass
class Condition:
    """Predicate over world state; every populated category must pass"""

    variables: Dict[str, VariableCheck] = field(default_factory=dict)
    flags: List[str] = field(default_factory=list)
    not_flags: List[str] = field(default_factory=list)
    items: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.variables:
            data["variables"] = {name: check.to_data() for name, check in self.variables.items()}
        if self.flags:
            data["flags"] = list(self.flags)
        if self.not_flags:
            data["not_flags"] = list(self.not_flags)
        if self.items:
            data["items"] = list(self.items)
        return data


@dataclass
class Effect:
    """State mutation applied when a node is entered or a choice is taken"""

    variables: Dict[str, VariableChange] = field(default_factory=dict)
    flags: List[str] = field(default_factory=list)
    remove_flags: List[str] = field(default_factory=list)
    items: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.variables:
            data["variables"] = {name: change.to_data() for name, change in self.variables.items()}
        if self.flags:
            data["flags"] = list(self.flags)
        if self.remove_flags:
            data["remove_flags"] = list(self.remove_flags)
        if self.items:
            data["items"] = dict(self.items)
        return data


@dataclass(frozen=True)
class Character:
    """A speaker that dialogue nodes refer to by id"""

    id: str
    name: str
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, **self.metadata}


@dataclass
class Choice:
    """Represents a player choice in dialogue"""

    text: str
    tooltip: Optional[str] = None
    conditions: Optional[Condition] = None
    effects: Optional[Effect] = None
    next: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"text": self.text}
        if self.tooltip is not None:
            data["tooltip"] = self.tooltip
        if self.conditions is not None:
            data["conditions"] = self.conditions.to_dict()
        if self.effects is not None:
            data["effects"] = self.effects.to_dict()
        if self.next is not None:
            data["next"] = self.next
        return data


@dataclass
class DialogueNode:
    """Represents a node in the dialogue graph"""

    id: str
    speaker: str
    text: str
    conditions: Optional[Condition] = None
    effects: Optional[Effect] = None
    choices: List[Choice] = field(default_factory=list)
    auto_next: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the dataset representation"""
        data: Dict[str, Any] = {"id": self.id, "speaker": self.speaker, "text": self.text}
        if self.conditions is not None:
            data["conditions"] = self.conditions.to_dict()
        if self.effects is not None:
            data["effects"] = self.effects.to_dict()
        if self.choices:
            data["choices"] = [c.to_dict() for c in self.choices]
        if self.auto_next is not None:
            data["autoNext"] = self.auto_next
        return data

    def targets(self) -> List[str]:
        """Node ids this node can transition to"""
        result = [c.next for c in self.choices if c.next is not None]
        if self.auto_next is not None:
            result.append(self.auto_next)
        return result

    def is_branch(self) -> bool:
        """Check if this node has choices (is a branching point)"""
        return len(self.choices) > 0

    def is_terminal(self) -> bool:
        """Check if this node is terminal (no choices and no auto transition)"""
        return len(self.choices) == 0 and self.auto_next is None


@dataclass(frozen=True)
class ChoiceView:
    """A visible choice; index points into the node's full choice list"""

    text: str
    tooltip: Optional[str]
    index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "tooltip": self.tooltip, "index": self.index}


@dataclass(frozen=True)
class DialogView:
    """Read-only projection of the active node for a presentation layer"""

    id: str
    text: str
    speaker: str
    speaker_data: Optional[Character]
    choices: List[ChoiceView]
    auto_next: Optional[str]

    @property
    def is_terminal(self) -> bool:
        return not self.choices and self.auto_next is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "speaker": self.speaker,
            "speakerData": self.speaker_data.to_dict() if self.speaker_data else None,
            "choices": [c.to_dict() for c in self.choices],
            "autoNext": self.auto_next,
        }
