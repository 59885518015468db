"""
Interactive Dialogue Player - Walk through a dataset in the terminal
"""

import shutil
import textwrap
from pathlib import Path
from typing import Optional

import click

from quest_forge.engine import DatasetLoader, DialogIssue, DialogSystem, DialogView
from quest_forge.saves import SaveError, SaveStore

QUIT_COMMANDS = ("quit", "exit", "q")

ISSUE_MESSAGES = {
    DialogIssue.NODE_NOT_FOUND: "The next dialog does not exist.",
    DialogIssue.CONDITIONS_NOT_MET: "The next dialog is not available right now.",
    DialogIssue.INVALID_CHOICE_INDEX: "That choice is not available.",
    DialogIssue.NO_ACTIVE_DIALOGUE: "No dialog is active.",
    DialogIssue.NO_AUTO_NEXT: "This dialog does not continue.",
    DialogIssue.INVALID_SNAPSHOT: "The saved state is invalid.",
}


class DialoguePlayer:
    """Terminal front end for a DialogSystem"""

    def __init__(self, dataset_path: Path, saves_dir: Path, verbose: bool = False):
        self.system = DialogSystem()
        self.dataset = self.system.load_dialog_data(DatasetLoader().parse_file(dataset_path))
        self.saves = SaveStore(saves_dir)
        self.verbose = verbose
        self.term_width = shutil.get_terminal_size((80, 24)).columns

        if self.dataset.warnings:
            click.secho("⚠️  Dataset warnings:", fg="yellow")
            for warning in self.dataset.warnings:
                click.secho(f"  • {warning}", fg="yellow")
            click.echo()

    def format_dialogue_box(self, text: str, speaker: str, color: str, max_width: int = 60) -> str:
        """Format dialogue text in a box"""
        actual_max = max(20, min(max_width, self.term_width - 8))
        lines = []
        for paragraph in text.split("\n"):
            lines.extend(textwrap.wrap(paragraph, width=actual_max) or [""])

        box_width = max(max(len(line) for line in lines), len(speaker) + 2)

        result = [click.style(f"\n  ╭─ {speaker} {'─' * (box_width - len(speaker) - 1)}╮", fg=color)]
        for line in lines:
            border = click.style("│", fg=color)
            result.append(f"  {border} {line.ljust(box_width)} {border}")
        result.append(click.style(f"  ╰{'─' * (box_width + 2)}╯", fg=color))
        return "\n".join(result)

    def play(self, start_id: str):
        """Run the dialogue loop from start_id until it ends or the player quits"""
        click.secho("=" * 60, fg="cyan")
        click.secho("🎭 INTERACTIVE DIALOGUE PLAYER", fg="yellow", bold=True)
        click.secho("=" * 60, fg="cyan")
        click.echo("Enter a number to choose, Enter to continue.")
        click.echo("Commands: 'state', 'save', 'load', 'quit'\n")

        view = self.system.start_dialog(start_id)
        if view is None:
            self._report_issue()
            return

        while view is not None:
            self.show_view(view)

            if view.is_terminal:
                click.secho("\n📍 You've reached the end of this conversation.", fg="yellow")
                self.system.end_dialog()
                break

            view = self._next_view(view)

        self.show_state()

    def show_view(self, view: DialogView):
        """Display the speaker's line and the visible choices"""
        if self.verbose:
            click.secho(f"\n[{view.id}]", dim=True)

        if view.speaker_data is None and view.speaker in ("", "narrator"):
            width = min(70, self.term_width - 6)
            for paragraph in view.text.split("\n"):
                for line in textwrap.wrap(paragraph, width=width) or [""]:
                    click.secho(f"📖 {line}" if line else "", dim=True, italic=True)
        else:
            click.echo(self.format_dialogue_box(view.text, view.speaker, "cyan"))

        if view.choices:
            click.secho(f"\n{'─' * 50}", dim=True)
            for number, choice in enumerate(view.choices, 1):
                tooltip = click.style(f"  ({choice.tooltip})", dim=True) if choice.tooltip else ""
                click.echo(f"  {click.style(f'[{number}]', fg='yellow', bold=True)} {choice.text}{tooltip}")
        elif view.auto_next:
            click.secho("\n  ⏎ Press Enter to continue", dim=True)

    def _next_view(self, view: DialogView) -> Optional[DialogView]:
        """Read input until it moves the dialogue; None means it ended"""
        while True:
            try:
                user_input = click.prompt(">", default="", show_default=False).strip().lower()
            except click.Abort:
                click.echo("\n👋 Thanks for playing!")
                self.system.end_dialog()
                return None

            if user_input in QUIT_COMMANDS:
                click.echo("\n👋 Thanks for playing!")
                self.system.end_dialog()
                return None

            if user_input == "state":
                self.show_state()
                continue

            if user_input == "save":
                self.save_game()
                continue

            if user_input == "load":
                loaded = self.load_game()
                if loaded is not None or not self.system.is_active:
                    return loaded
                continue

            if user_input == "" and view.auto_next and not view.choices:
                return self._advance(self.system.continue_dialog())

            try:
                number = int(user_input)
            except ValueError:
                click.secho("❌ Please enter a valid number or command.", fg="red")
                continue

            if 1 <= number <= len(view.choices):
                selected = view.choices[number - 1]
                click.echo(self.format_dialogue_box(selected.text, "You", "green"))
                return self._advance(self.system.make_choice(selected.index))

            click.secho("❌ Invalid choice. Please enter a number from the list.", fg="red")

    def _advance(self, view: Optional[DialogView]) -> Optional[DialogView]:
        if view is None:
            if self.system.last_issue is not None:
                self._report_issue()
            self.system.end_dialog()
        return view

    def _report_issue(self):
        issue = self.system.last_issue
        click.secho(f"⚠️  {ISSUE_MESSAGES.get(issue, 'Nothing happened.')}", fg="yellow")

    def show_state(self):
        """Display current world state"""
        snapshot = self.system.export_state()
        click.secho(f"\n{'=' * 50}", fg="blue")
        click.secho("📊 CURRENT GAME STATE", fg="blue", bold=True)
        click.secho("=" * 50, fg="blue")

        click.echo("\n📈 Variables:")
        if snapshot["variables"]:
            for name, value in sorted(snapshot["variables"].items()):
                click.echo(f"  • {name}: {value}")
        else:
            click.echo("  (none)")

        click.echo("\n🚩 Flags:")
        click.echo(f"  {', '.join(snapshot['flags'])}" if snapshot["flags"] else "  (none)")

        click.echo("\n🎒 Inventory:")
        items = {item: n for item, n in snapshot["inventory"].items() if n > 0}
        if items:
            for item, count in sorted(items.items()):
                click.echo(f"  • {item} x{count}")
        else:
            click.echo("  (empty)")

        click.echo(f"\n📍 Current dialog: {self.system.current_dialog or 'None'}")

    def save_game(self):
        """Save current state and position"""
        name = click.prompt("Save name (Enter for timestamp)", default="", show_default=False)
        try:
            slot = self.saves.save(name.strip(), self.system.export_state(), self.system.current_dialog)
        except SaveError as e:
            click.secho(f"❌ {e}", fg="red")
            return
        click.secho(f"💾 Game saved as '{slot.name}'!", fg="green")

    def load_game(self) -> Optional[DialogView]:
        """Pick a save slot and restore it; returns the resumed view if any"""
        slots = self.saves.list_saves()
        if not slots:
            click.secho("❌ No save files found!", fg="red")
            return None

        click.secho("\n💾 AVAILABLE SAVES", fg="cyan", bold=True)
        for i, slot in enumerate(slots, 1):
            click.echo(f"  {click.style(f'[{i}]', fg='yellow')} {slot.name}")
            click.secho(f"      📅 {slot.timestamp[:16]} | 📍 {slot.node or '-'}", dim=True)

        choice = click.prompt("Select save to load (or 'cancel')", default="cancel", show_default=False)
        try:
            slot = slots[int(choice) - 1] if int(choice) >= 1 else None
        except (ValueError, IndexError):
            slot = None
        if slot is None:
            return None

        if not self.system.import_state(slot.state):
            self._report_issue()
            return None

        click.secho(f"💾 Game loaded from '{slot.name}'!", fg="green")
        view = self.system.resume_dialog(slot.node) if slot.node else None
        if view is None:
            if self.system.last_issue is not None:
                self._report_issue()
            click.echo("The saved game has no dialog to resume.")
            self.system.end_dialog()
        return view
