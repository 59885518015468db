"""
Dialogue/quest state engine
"""

from .errors import DatasetError, DialogIssue
from .loader import DATASET_SCHEMA, Dataset, DatasetLoader
from .model import (
    Character,
    Choice,
    ChoiceView,
    Comparison,
    Condition,
    DialogueNode,
    DialogView,
    Effect,
    Mutation,
    VariableChange,
    VariableCheck,
)
from .state import SNAPSHOT_SCHEMA, WorldState
from .system import DialogSystem

__all__ = [
    "DialogSystem",
    "WorldState",
    "DatasetLoader",
    "Dataset",
    "DatasetError",
    "DialogIssue",
    "DATASET_SCHEMA",
    "SNAPSHOT_SCHEMA",
    # Data model
    "Character",
    "DialogueNode",
    "Choice",
    "Condition",
    "Effect",
    "Comparison",
    "Mutation",
    "VariableCheck",
    "VariableChange",
    "DialogView",
    "ChoiceView",
]
