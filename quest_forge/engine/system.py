"""
Dialog system: walks the dialogue graph and keeps the world state
"""

import logging
from typing import Any, Dict, Optional, Union

import jsonschema

from .errors import DialogIssue
from .loader import Dataset, DatasetLoader
from .model import Character, ChoiceView, DialogueNode, DialogView
from .state import WorldState

logger = logging.getLogger(__name__)


class DialogSystem:
    """
    Dialogue interpreter consumed by a presentation layer.

    The presentation layer calls start_dialog(), make_choice() and
    continue_dialog() and renders the returned DialogView. None of the public
    operations raise: when one does nothing it returns None and records the
    reason on last_issue.

    Calls must be serialized by the caller; there is no internal locking.
    """

    def __init__(self, state: Optional[WorldState] = None):
        self.dialogs: Dict[str, DialogueNode] = {}
        self.characters: Dict[str, Character] = {}
        self.state = state if state is not None else WorldState()
        self.current_dialog: Optional[str] = None
        self.last_issue: Optional[DialogIssue] = None

    @property
    def is_active(self) -> bool:
        return self.current_dialog is not None

    def load_dialog_data(self, data: Union[Dataset, Dict[str, Any]]) -> Dataset:
        """
        Load characters, global variables and dialogs.

        Replaces the graph and the character table. Global variables only seed
        names that are not set yet, so progress survives a reload.

        Raises:
            DatasetError: if a raw document fails validation
        """
        dataset = data if isinstance(data, Dataset) else DatasetLoader().parse(data)

        self.characters = dict(dataset.characters)
        self.dialogs = dict(dataset.nodes)
        for name, value in dataset.global_variables.items():
            self.state.variables.setdefault(name, value)

        if self.current_dialog is not None and self.current_dialog not in self.dialogs:
            logger.debug("Active dialog %s is gone after reload, ending it", self.current_dialog)
            self.current_dialog = None

        logger.debug("Loaded %d dialogs, %d characters", len(self.dialogs), len(self.characters))
        return dataset

    def start_dialog(self, dialog_id: str) -> Optional[DialogView]:
        """Enter a node: check its conditions, apply its effects, return its view"""
        node = self.dialogs.get(dialog_id)
        if node is None:
            logger.error("Dialog %s not found", dialog_id)
            return self._fail(DialogIssue.NODE_NOT_FOUND)

        if not self.state.check(node.conditions):
            logger.warning("Conditions not met for dialog %s", dialog_id)
            return self._fail(DialogIssue.CONDITIONS_NOT_MET)

        self.current_dialog = dialog_id
        self.state.apply(node.effects)
        self.last_issue = None
        logger.debug("Entered dialog %s", dialog_id)
        return self.current_view()

    def resume_dialog(self, dialog_id: str) -> Optional[DialogView]:
        """Point the cursor at a node without re-checking conditions or re-applying effects"""
        if dialog_id not in self.dialogs:
            logger.error("Dialog %s not found", dialog_id)
            return self._fail(DialogIssue.NODE_NOT_FOUND)

        self.current_dialog = dialog_id
        self.last_issue = None
        return self.current_view()

    def current_view(self) -> Optional[DialogView]:
        """Project the active node, showing only choices whose conditions pass"""
        node = self._current_node()
        if node is None:
            return None

        speaker = self.characters.get(node.speaker)
        choices = [
            ChoiceView(text=choice.text, tooltip=choice.tooltip, index=i)
            for i, choice in enumerate(node.choices)
            if self.state.check(choice.conditions)
        ]
        return DialogView(
            id=node.id,
            text=node.text,
            speaker=speaker.name if speaker else node.speaker,
            speaker_data=speaker,
            choices=choices,
            auto_next=node.auto_next,
        )

    def make_choice(self, choice_index: int) -> Optional[DialogView]:
        """
        Take a choice of the active node.

        Args:
            choice_index: Position in the node's full choice list, as given by
                ChoiceView.index. The choice's own conditions are not re-checked.

        Returns:
            The view of the next node, or None when the dialogue ends or the
            call did nothing (see last_issue).
        """
        node = self._current_node()
        if node is None:
            logger.debug("make_choice(%s) without an active dialog", choice_index)
            return self._fail(DialogIssue.NO_ACTIVE_DIALOGUE)

        if (
            not isinstance(choice_index, int)
            or isinstance(choice_index, bool)
            or not 0 <= choice_index < len(node.choices)
        ):
            logger.debug("Invalid choice index %s for dialog %s", choice_index, node.id)
            return self._fail(DialogIssue.INVALID_CHOICE_INDEX)

        choice = node.choices[choice_index]
        self.state.apply(choice.effects)

        if choice.next:
            return self.start_dialog(choice.next)

        logger.debug("Dialog %s ended by choice %d", node.id, choice_index)
        self.current_dialog = None
        self.last_issue = None
        return None

    def continue_dialog(self) -> Optional[DialogView]:
        """Follow the active node's autoNext link"""
        node = self._current_node()
        if node is None:
            logger.debug("continue_dialog() without an active dialog")
            return self._fail(DialogIssue.NO_ACTIVE_DIALOGUE)

        if not node.auto_next:
            logger.debug("Dialog %s has no autoNext", node.id)
            return self._fail(DialogIssue.NO_AUTO_NEXT)

        return self.start_dialog(node.auto_next)

    def end_dialog(self):
        """Clear the cursor"""
        self.current_dialog = None
        self.last_issue = None

    def export_state(self) -> Dict[str, Any]:
        """Snapshot of variables, flags and inventory, independent of live state"""
        return self.state.to_dict()

    def import_state(self, snapshot: Dict[str, Any]) -> bool:
        """
        Replace variables, flags and inventory with a copy of a snapshot.

        The dialog graph, characters and cursor are left alone. An invalid
        snapshot leaves the state untouched and returns False.
        """
        try:
            restored = WorldState.from_dict(snapshot)
        except jsonschema.ValidationError as e:
            logger.error("Rejected state snapshot: %s", e.message)
            self.last_issue = DialogIssue.INVALID_SNAPSHOT
            return False

        self.state.variables = restored.variables
        self.state.flags = restored.flags
        self.state.inventory = restored.inventory
        self.last_issue = None
        return True

    def _current_node(self) -> Optional[DialogueNode]:
        if self.current_dialog is None:
            return None
        return self.dialogs.get(self.current_dialog)

    def _fail(self, issue: DialogIssue) -> None:
        self.last_issue = issue
        return None
