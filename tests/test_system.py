"""Tests for DialogSystem traversal, projection and persistence."""

import logging

import pytest

from quest_forge.engine import DialogIssue, DialogSystem, WorldState
from quest_forge.engine.model import Effect, Mutation, VariableChange


class TestStartDialog:
    """Test entering dialog nodes."""

    def test_start_sets_cursor_and_returns_view(self, system):
        view = system.start_dialog("guard_encounter")

        assert view is not None
        assert view.id == "guard_encounter"
        assert view.text == "Halt!"
        assert system.current_dialog == "guard_encounter"
        assert system.is_active
        assert system.last_issue is None

    def test_unconditioned_nodes_always_start(self, system):
        """Every node without conditions can be entered."""
        for node_id, node in system.dialogs.items():
            if node.conditions is None:
                assert system.start_dialog(node_id) is not None
                assert system.current_dialog == node_id

    def test_missing_id_leaves_cursor_empty(self, system):
        assert system.start_dialog("missing_id") is None
        assert system.current_dialog is None
        assert system.last_issue is DialogIssue.NODE_NOT_FOUND

    def test_missing_id_keeps_active_cursor(self, system):
        system.start_dialog("intro")
        assert system.start_dialog("missing_id") is None
        assert system.current_dialog == "intro"

    def test_missing_id_is_logged(self, system, caplog):
        with caplog.at_level(logging.ERROR, logger="quest_forge.engine.system"):
            system.start_dialog("missing_id")
        assert "Dialog missing_id not found" in caplog.text

    def test_conditions_not_met(self, system):
        assert system.start_dialog("guard_allow") is None
        assert system.current_dialog is None
        assert system.last_issue is DialogIssue.CONDITIONS_NOT_MET

    def test_not_flags_block_entry(self, system):
        assert system.start_dialog("banned_zone") is not None
        system.state.flags.add("banned")
        assert system.start_dialog("banned_zone") is None
        assert system.last_issue is DialogIssue.CONDITIONS_NOT_MET

    def test_entry_applies_node_effects(self, system):
        system.start_dialog("intro_2")
        assert system.state.variables["visits"] == 1
        system.start_dialog("intro_2")
        assert system.state.variables["visits"] == 2

    def test_failed_start_applies_no_effects(self, system):
        system.state.variables["gold"] = 0
        before = system.export_state()
        system.start_dialog("vault")
        assert system.export_state() == before


class TestMakeChoice:
    """Test choosing options of the active node."""

    def test_guard_scenario(self, system):
        view = system.start_dialog("guard_encounter")
        assert view.speaker == "Town Guard"
        assert len(view.choices) == 1
        assert view.choices[0].text == "Let me pass"

        next_view = system.make_choice(0)

        assert "persuaded" in system.state.flags
        assert system.current_dialog == "guard_allow"
        assert next_view is not None
        assert next_view.id == "guard_allow"
        assert next_view.text == "Go on then."

    def test_without_active_dialog(self, system):
        assert system.make_choice(0) is None
        assert system.last_issue is DialogIssue.NO_ACTIVE_DIALOGUE

    @pytest.mark.parametrize("index", [-1, 3, 99])
    def test_invalid_index(self, system, index):
        system.start_dialog("shop")
        before = system.export_state()

        assert system.make_choice(index) is None
        assert system.last_issue is DialogIssue.INVALID_CHOICE_INDEX
        assert system.current_dialog == "shop"
        assert system.export_state() == before

    @pytest.mark.parametrize("index", [None, "0", 0.0, True])
    def test_non_integer_index(self, system, index):
        system.state.inventory["gem"] = 1
        system.start_dialog("shop")
        before = system.export_state()

        assert system.make_choice(index) is None
        assert system.last_issue is DialogIssue.INVALID_CHOICE_INDEX
        assert system.current_dialog == "shop"
        assert system.export_state() == before

    def test_node_without_choices(self, system):
        system.start_dialog("intro")
        assert system.make_choice(0) is None
        assert system.last_issue is DialogIssue.INVALID_CHOICE_INDEX
        assert system.current_dialog == "intro"

    def test_choice_without_next_ends_dialog(self, system):
        system.start_dialog("shop")
        assert system.make_choice(2) is None
        assert system.current_dialog is None
        assert system.last_issue is None

    def test_choice_to_missing_node_fails_closed(self, system):
        """Effects of the choice apply, but the cursor stays put."""
        system.start_dialog("broken_link")

        assert system.make_choice(0) is None
        assert system.last_issue is DialogIssue.NODE_NOT_FOUND
        assert "tried" in system.state.flags
        assert system.current_dialog == "broken_link"

    def test_hidden_choice_still_selectable_by_index(self, system):
        """Only display filters choices; selection by raw index is not re-checked."""
        view = system.start_dialog("shop")
        assert 0 not in [c.index for c in view.choices]

        next_view = system.make_choice(0)

        assert next_view is not None
        assert next_view.id == "shop"
        assert system.state.variables["gold"] == -5
        assert system.state.inventory["sword"] == 1

    def test_choice_effects_then_next_effects(self, system):
        system.state.variables["gold"] = 20
        system.start_dialog("shop")
        system.make_choice(0)
        system.make_choice(0)
        assert system.state.variables["gold"] == 0
        assert system.state.inventory["sword"] == 2


class TestContinueDialog:
    """Test autoNext transitions."""

    def test_continue_follows_auto_next(self, system):
        view = system.start_dialog("intro")
        assert view.auto_next == "intro_2"
        assert view.choices == []

        next_view = system.continue_dialog()

        assert next_view.id == "intro_2"
        assert system.current_dialog == "intro_2"
        assert system.state.variables["visits"] == 1

    def test_continue_without_active_dialog(self, system):
        assert system.continue_dialog() is None
        assert system.last_issue is DialogIssue.NO_ACTIVE_DIALOGUE

    def test_continue_without_auto_next(self, system):
        system.start_dialog("intro_2")
        assert system.continue_dialog() is None
        assert system.last_issue is DialogIssue.NO_AUTO_NEXT
        assert system.current_dialog == "intro_2"
        assert system.state.variables["visits"] == 1

    def test_continue_to_missing_node(self, system):
        system.start_dialog("dead_end")
        assert system.continue_dialog() is None
        assert system.last_issue is DialogIssue.NODE_NOT_FOUND
        assert system.current_dialog == "dead_end"


class TestProjection:
    """Test the view handed to presentation layers."""

    def test_choices_filtered_with_original_indices(self, system):
        view = system.start_dialog("shop")
        assert [(c.text, c.index) for c in view.choices] == [("Leave", 2)]

        system.state.inventory["gem"] = 1
        system.state.variables["gold"] = 10
        view = system.current_view()
        assert [c.index for c in view.choices] == [0, 1, 2]
        assert view.choices[0].tooltip == "10 gold"

    def test_projection_is_deterministic(self, system):
        system.start_dialog("shop")
        assert system.current_view() == system.current_view()

    def test_unknown_speaker_falls_back_to_raw_key(self, system):
        view = system.start_dialog("shop")
        assert view.speaker == "merchant"
        assert view.speaker_data is None

    def test_speaker_data_is_character_record(self, system):
        view = system.start_dialog("guard_encounter")
        assert view.speaker_data.id == "guard"
        assert view.speaker_data.metadata == {"portrait": "guard_face"}

    def test_string_character_name(self, system):
        assert system.start_dialog("intro").speaker == "Village Elder"

    def test_terminal_node(self, system):
        assert system.start_dialog("guard_encounter").is_terminal is False
        assert system.start_dialog("intro").is_terminal is False
        assert system.start_dialog("intro_2").is_terminal is True

    def test_to_dict_uses_dataset_keys(self, system):
        data = system.start_dialog("guard_encounter").to_dict()
        assert data == {
            "id": "guard_encounter",
            "text": "Halt!",
            "speaker": "Town Guard",
            "speakerData": {"name": "Town Guard", "portrait": "guard_face"},
            "choices": [{"text": "Let me pass", "tooltip": None, "index": 0}],
            "autoNext": None,
        }

    def test_no_view_without_cursor(self, system):
        assert system.current_view() is None


class TestVariableScenario:
    """A failing comparison passes once an effect raises the variable."""

    def test_gold_threshold(self, system):
        assert system.state.variables["gold"] == 5
        assert system.start_dialog("vault") is None

        system.state.apply(Effect(variables={"gold": VariableChange(Mutation.ADD, 10)}))

        assert system.state.variables["gold"] == 15
        assert system.start_dialog("vault") is not None

    def test_huge_treasury_divides_to_infinity(self):
        system = DialogSystem()
        system.load_dialog_data(
            {
                "globalVariables": {"gold": 10**400},
                "dialogs": [
                    {
                        "id": "tax",
                        "text": "Half goes to the crown.",
                        "effects": {"variables": {"gold": {"op": "/=", "value": 2}}, "flags": ["taxed"]},
                    }
                ],
            }
        )

        assert system.start_dialog("tax") is not None
        assert system.state.variables["gold"] == float("inf")
        assert "taxed" in system.state.flags


class TestSessionControl:
    """Test ending and resuming dialogs."""

    def test_end_dialog(self, system):
        system.start_dialog("intro")
        system.end_dialog()
        assert system.current_dialog is None
        assert system.current_view() is None

    def test_resume_skips_conditions_and_effects(self, system):
        view = system.resume_dialog("guard_allow")
        assert view.id == "guard_allow"
        assert system.current_dialog == "guard_allow"

        system.resume_dialog("intro_2")
        assert "visits" not in system.state.variables

    def test_resume_missing_node(self, system):
        system.start_dialog("intro")
        assert system.resume_dialog("missing_id") is None
        assert system.last_issue is DialogIssue.NODE_NOT_FOUND
        assert system.current_dialog == "intro"


class TestReload:
    """Test loading dialog content more than once."""

    def test_reload_keeps_world_progress(self, system, guard_data):
        system.start_dialog("guard_encounter")
        system.make_choice(0)
        system.state.variables["gold"] = 42
        system.state.inventory["key"] = 1

        system.load_dialog_data(guard_data)

        assert system.state.variables["gold"] == 42
        assert "persuaded" in system.state.flags
        assert system.state.inventory["key"] == 1

    def test_reload_seeds_new_globals(self, system, guard_data):
        guard_data["globalVariables"]["reputation"] = 3
        system.load_dialog_data(guard_data)
        assert system.state.variables["reputation"] == 3

    def test_globals_are_copied(self, guard_data):
        system = DialogSystem()
        system.load_dialog_data(guard_data)
        system.state.variables["gold"] = 99
        assert guard_data["globalVariables"]["gold"] == 5

    def test_reload_replaces_graph(self, system):
        system.load_dialog_data({"dialogs": [{"id": "only", "speaker": "guard", "text": "Hi"}]})
        assert list(system.dialogs) == ["only"]
        assert system.characters == {}
        assert system.start_dialog("guard_encounter") is None

    def test_reload_keeps_cursor_when_node_survives(self, system, guard_data):
        system.start_dialog("intro")
        system.load_dialog_data(guard_data)
        assert system.current_dialog == "intro"

    def test_reload_clears_cursor_when_node_disappears(self, system):
        system.start_dialog("intro")
        system.load_dialog_data({"dialogs": [{"id": "only", "text": "Hi"}]})
        assert system.current_dialog is None

    def test_injected_state_is_used(self, guard_data):
        state = WorldState(variables={"gold": 50})
        system = DialogSystem(state)
        system.load_dialog_data(guard_data)

        assert system.start_dialog("vault") is not None
        assert state.variables["health"] == 100


class TestStatePersistence:
    """Test export_state and import_state."""

    def test_export_shape(self, system):
        system.start_dialog("guard_encounter")
        system.make_choice(0)
        system.state.inventory["gem"] = 2

        assert system.export_state() == {
            "variables": {"gold": 5, "health": 100},
            "flags": ["persuaded"],
            "inventory": {"gem": 2},
        }

    def test_round_trip(self, system):
        system.state.flags.update({"b", "a"})
        system.state.inventory["gem"] = 3
        system.state.variables["ratio"] = 0.5
        snapshot = system.export_state()

        other = DialogSystem()
        assert other.import_state(snapshot) is True
        assert other.export_state() == snapshot

    def test_snapshot_is_independent(self, system):
        snapshot = system.export_state()
        snapshot["variables"]["gold"] = 1000
        snapshot["flags"].append("cheater")
        snapshot["inventory"]["gem"] = 9

        assert system.state.variables["gold"] == 5
        assert "cheater" not in system.state.flags
        assert "gem" not in system.state.inventory

    def test_import_copies_snapshot(self, system):
        snapshot = {"variables": {"gold": 1}, "flags": ["x"], "inventory": {"gem": 1}}
        system.import_state(snapshot)
        snapshot["variables"]["gold"] = 500
        snapshot["inventory"]["gem"] = 50

        assert system.state.variables == {"gold": 1}
        assert system.state.inventory == {"gem": 1}

    def test_import_replaces_wholesale(self, system):
        system.state.flags.add("old")
        system.import_state({"variables": {}, "flags": [], "inventory": {}})

        assert system.state.variables == {}
        assert system.state.flags == set()
        assert system.state.get("gold") == 0

    def test_import_leaves_graph_and_cursor(self, system):
        system.start_dialog("intro")
        system.import_state({"variables": {}, "flags": [], "inventory": {}})

        assert system.current_dialog == "intro"
        assert "guard_encounter" in system.dialogs

    @pytest.mark.parametrize(
        "snapshot",
        [
            None,
            {"variables": {}, "flags": []},
            {"variables": {"gold": "lots"}, "flags": [], "inventory": {}},
            {"variables": {}, "flags": [], "inventory": {"gem": -1}},
            {"variables": {}, "flags": "persuaded", "inventory": {}},
        ],
    )
    def test_invalid_snapshot_rejected(self, system, snapshot):
        before = system.export_state()

        assert system.import_state(snapshot) is False
        assert system.last_issue is DialogIssue.INVALID_SNAPSHOT
        assert system.export_state() == before
