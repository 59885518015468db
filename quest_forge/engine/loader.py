"""
Loader for JSON dialogue datasets
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
from jsonschema.exceptions import best_match

from .errors import DatasetError
from .model import (
    Character,
    Choice,
    Comparison,
    Condition,
    DialogueNode,
    Effect,
    Mutation,
    Number,
    VariableChange,
    VariableCheck,
)

logger = logging.getLogger(__name__)

_NUMBER = {"type": "number"}
_NAMES = {"type": "array", "items": {"type": "string"}}
_OPTIONAL_STRING = {"type": ["string", "null"]}

_VARIABLE_CHECK = {
    "oneOf": [
        _NUMBER,
        {
            "type": "object",
            "properties": {"op": {"enum": [c.value for c in Comparison]}, "value": _NUMBER},
            "required": ["op", "value"],
            "additionalProperties": False,
        },
    ]
}

_VARIABLE_CHANGE = {
    "oneOf": [
        _NUMBER,
        {
            "type": "object",
            "properties": {"op": {"enum": [m.value for m in Mutation]}, "value": _NUMBER},
            "required": ["op", "value"],
            "additionalProperties": False,
        },
    ]
}

_CONDITION = {
    "type": ["object", "null"],
    "properties": {
        "variables": {"type": "object", "additionalProperties": _VARIABLE_CHECK},
        "flags": _NAMES,
        "not_flags": _NAMES,
        "items": _NAMES,
    },
    "additionalProperties": False,
}

_EFFECT = {
    "type": ["object", "null"],
    "properties": {
        "variables": {"type": "object", "additionalProperties": _VARIABLE_CHANGE},
        "flags": _NAMES,
        "remove_flags": _NAMES,
        "items": {"type": "object", "additionalProperties": {"type": "integer"}},
    },
    "additionalProperties": False,
}

_CHOICE = {
    "type": "object",
    "properties": {
        "text": {"type": "string"},
        "tooltip": _OPTIONAL_STRING,
        "conditions": _CONDITION,
        "effects": _EFFECT,
        "next": _OPTIONAL_STRING,
    },
    "required": ["text"],
}

_NODE = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "speaker": {"type": "string"},
        "text": {"type": "string"},
        "conditions": _CONDITION,
        "effects": _EFFECT,
        "choices": {"type": ["array", "null"], "items": _CHOICE},
        "autoNext": _OPTIONAL_STRING,
    },
    "required": ["id", "text"],
}

_CHARACTER = {
    "oneOf": [
        {"type": "string"},
        {"type": "object", "properties": {"name": {"type": "string"}}},
    ]
}

DATASET_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "characters": {"type": "object", "additionalProperties": _CHARACTER},
        "globalVariables": {"type": "object", "additionalProperties": _NUMBER},
        "dialogs": {"type": "array", "items": _NODE},
    },
    "required": ["dialogs"],
    "additionalProperties": False,
}

_VALIDATOR = jsonschema.Draft7Validator(DATASET_SCHEMA)


@dataclass
class Dataset:
    """Represents a loaded dialogue dataset"""

    characters: Dict[str, Character] = field(default_factory=dict)
    global_variables: Dict[str, Number] = field(default_factory=dict)
    nodes: Dict[str, DialogueNode] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the JSON dataset layout"""
        return {
            "characters": {cid: c.to_dict() for cid, c in self.characters.items()},
            "globalVariables": dict(self.global_variables),
            "dialogs": [node.to_dict() for node in self.nodes.values()],
        }


class DatasetLoader:
    """Validates raw dataset documents and builds the typed dialogue graph"""

    def __init__(self):
        self.dataset: Dataset = Dataset()

    def parse_file(self, file_path: Union[str, Path]) -> Dataset:
        """Parse a JSON dataset file"""
        path = Path(file_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise DatasetError(f"cannot read dataset: {e}", str(path)) from e
        except json.JSONDecodeError as e:
            raise DatasetError(f"invalid JSON at line {e.lineno}: {e.msg}", str(path)) from e
        return self.parse(data)

    def parse(self, data: Any) -> Dataset:
        """
        Parse a dataset document.

        Args:
            data: Decoded JSON with `characters`, `globalVariables` and `dialogs`

        Returns:
            The parsed Dataset

        Raises:
            DatasetError: if the document does not match DATASET_SCHEMA
        """
        error = best_match(_VALIDATOR.iter_errors(data))
        if error is not None:
            raise DatasetError(error.message, error.json_path)

        self.dataset = Dataset()

        for char_id, raw in data.get("characters", {}).items():
            self.dataset.characters[char_id] = self._parse_character(char_id, raw)

        self.dataset.global_variables = dict(data.get("globalVariables", {}))

        for i, raw in enumerate(data["dialogs"]):
            node = self._parse_node(raw, f"$.dialogs[{i}]")
            if node.id in self.dataset.nodes:
                self._warn(f"Duplicate dialog id '{node.id}' at dialogs[{i}] replaces the earlier definition")
            if node.speaker and node.speaker not in self.dataset.characters:
                self._warn(f"Dialog '{node.id}' has unknown speaker '{node.speaker}'")
            self.dataset.nodes[node.id] = node

        return self.dataset

    def _warn(self, message: str):
        logger.warning(message)
        self.dataset.warnings.append(message)

    def _parse_character(self, char_id: str, raw: Union[str, Dict[str, Any]]) -> Character:
        if isinstance(raw, str):
            return Character(id=char_id, name=raw)
        metadata = {k: v for k, v in raw.items() if k != "name"}
        return Character(id=char_id, name=raw.get("name", char_id), metadata=metadata)

    def _parse_node(self, raw: Dict[str, Any], path: str) -> DialogueNode:
        choices = [
            self._parse_choice(choice, f"{path}.choices[{i}]")
            for i, choice in enumerate(raw.get("choices") or [])
        ]
        return DialogueNode(
            id=raw["id"],
            speaker=raw.get("speaker", ""),
            text=raw["text"],
            conditions=self._parse_condition(raw.get("conditions")),
            effects=self._parse_effect(raw.get("effects"), f"{path}.effects"),
            choices=choices,
            auto_next=raw.get("autoNext"),
        )

    def _parse_choice(self, raw: Dict[str, Any], path: str) -> Choice:
        return Choice(
            text=raw["text"],
            tooltip=raw.get("tooltip"),
            conditions=self._parse_condition(raw.get("conditions")),
            effects=self._parse_effect(raw.get("effects"), f"{path}.effects"),
            next=raw.get("next"),
        )

    def _parse_condition(self, raw: Optional[Dict[str, Any]]) -> Optional[Condition]:
        if raw is None:
            return None
        variables = {}
        for name, spec in raw.get("variables", {}).items():
            if isinstance(spec, dict):
                variables[name] = VariableCheck(Comparison(spec["op"]), spec["value"])
            else:
                variables[name] = VariableCheck(Comparison.EQ, spec, literal=True)
        return Condition(
            variables=variables,
            flags=list(raw.get("flags", [])),
            not_flags=list(raw.get("not_flags", [])),
            items=list(raw.get("items", [])),
        )

    def _parse_effect(self, raw: Optional[Dict[str, Any]], path: str) -> Optional[Effect]:
        if raw is None:
            return None
        variables = {}
        for name, spec in raw.get("variables", {}).items():
            if isinstance(spec, dict):
                change = VariableChange(Mutation(spec["op"]), spec["value"])
                if change.op is Mutation.DIV and change.value == 0:
                    raise DatasetError("division by zero", f"{path}.variables.{name}")
            else:
                change = VariableChange(Mutation.SET, spec, literal=True)
            variables[name] = change
        return Effect(
            variables=variables,
            flags=list(raw.get("flags", [])),
            remove_flags=list(raw.get("remove_flags", [])),
            items={item: int(delta) for item, delta in raw.get("items", {}).items()},
        )
