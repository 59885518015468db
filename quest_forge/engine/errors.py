"""
Errors raised while loading data and issues recorded by the dialog system
"""

from enum import Enum


class DatasetError(ValueError):
    """Raised when a dialogue dataset cannot be loaded"""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class DialogIssue(Enum):
    """Why a dialog operation did nothing"""

    NODE_NOT_FOUND = "node_not_found"
    CONDITIONS_NOT_MET = "conditions_not_met"
    INVALID_CHOICE_INDEX = "invalid_choice_index"
    NO_ACTIVE_DIALOGUE = "no_active_dialogue"
    NO_AUTO_NEXT = "no_auto_next"
    INVALID_SNAPSHOT = "invalid_snapshot"
