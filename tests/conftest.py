"""Shared fixtures: a small dataset exercising every engine feature."""

import copy
import json

import pytest

from quest_forge.engine import DialogSystem

GUARD_DATA = {
    "characters": {
        "guard": {"name": "Town Guard", "portrait": "guard_face"},
        "elder": "Village Elder",
    },
    "globalVariables": {"gold": 5, "health": 100},
    "dialogs": [
        {
            "id": "guard_encounter",
            "speaker": "guard",
            "text": "Halt!",
            "choices": [
                {"text": "Let me pass", "effects": {"flags": ["persuaded"]}, "next": "guard_allow"},
            ],
        },
        {
            "id": "guard_allow",
            "speaker": "guard",
            "text": "Go on then.",
            "conditions": {"flags": ["persuaded"]},
        },
        {
            "id": "intro",
            "speaker": "elder",
            "text": "Welcome to the village.",
            "autoNext": "intro_2",
        },
        {
            "id": "intro_2",
            "speaker": "elder",
            "text": "Make yourself at home.",
            "effects": {"variables": {"visits": {"op": "+=", "value": 1}}},
        },
        {
            "id": "shop",
            "speaker": "merchant",
            "text": "Buying or selling?",
            "choices": [
                {
                    "text": "Buy sword",
                    "tooltip": "10 gold",
                    "conditions": {"variables": {"gold": {"op": ">=", "value": 10}}},
                    "effects": {"variables": {"gold": {"op": "-=", "value": 10}}, "items": {"sword": 1}},
                    "next": "shop",
                },
                {
                    "text": "Sell gem",
                    "conditions": {"items": ["gem"]},
                    "effects": {"variables": {"gold": {"op": "+=", "value": 5}}, "items": {"gem": -1}},
                },
                {"text": "Leave"},
            ],
        },
        {
            "id": "vault",
            "speaker": "guard",
            "text": "The vault opens.",
            "conditions": {"variables": {"gold": {"op": ">=", "value": 10}}},
        },
        {
            "id": "broken_link",
            "speaker": "elder",
            "text": "Where to?",
            "choices": [
                {"text": "Nowhere", "effects": {"flags": ["tried"]}, "next": "missing_node"},
            ],
        },
        {
            "id": "dead_end",
            "speaker": "elder",
            "text": "This road leads nowhere.",
            "autoNext": "also_missing",
        },
        {
            "id": "banned_zone",
            "speaker": "guard",
            "text": "Move along.",
            "conditions": {"not_flags": ["banned"]},
        },
    ],
}


@pytest.fixture
def guard_data():
    """Fresh copy of the shared dataset."""
    return copy.deepcopy(GUARD_DATA)


@pytest.fixture
def system(guard_data):
    """Dialog system with the shared dataset loaded."""
    dialog_system = DialogSystem()
    dialog_system.load_dialog_data(guard_data)
    return dialog_system


@pytest.fixture
def dataset_file(tmp_path, guard_data):
    """The shared dataset written to a JSON file."""
    path = tmp_path / "dialogs.json"
    path.write_text(json.dumps(guard_data), encoding="utf-8")
    return path
