"""
Semantic validation for dialogue datasets.

Uses DatasetLoader for structural checks, then looks for problems the loader
tolerates: dangling links, state that is checked but never produced, and
nodes the player can never reach.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set

import click

from quest_forge.engine import Dataset, DatasetError, DatasetLoader
from quest_forge.engine.model import Condition, Effect


@dataclass
class ValidationIssue:
    """Represents a validation problem with its location"""

    severity: str  # 'error' or 'warning'
    message: str
    node_id: Optional[str] = None
    suggestion: Optional[str] = None


class DatasetValidator:
    """Validator for dialogue datasets with per-node issue reporting"""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []
        self.dataset: Optional[Dataset] = None

        # Tracking for semantic validation
        self.variables_set: Set[str] = set()
        self.variables_used: Set[str] = set()
        self.flags_set: Set[str] = set()
        self.flags_checked: Set[str] = set()
        self.items_given: Set[str] = set()
        self.items_checked: Set[str] = set()

        # node id -> ids of nodes linking to it
        self.incoming: Dict[str, Set[str]] = {}

    def validate(self) -> bool:
        """Run every check; True when no errors were found"""
        try:
            self.dataset = DatasetLoader().parse_file(self.file_path)
        except DatasetError as e:
            self._add_error(str(e))
            return False

        for warning in self.dataset.warnings:
            self._add_warning(warning)

        self._validate_semantic()
        self._validate_flow()

        return len(self.errors) == 0

    @property
    def entry_points(self) -> List[str]:
        """Nodes no other node links to; these are started by the game"""
        if not self.dataset:
            return []
        return [node_id for node_id in self.dataset.nodes if not self.incoming.get(node_id)]

    def _validate_semantic(self):
        """Track which state is produced and consumed across the dataset"""
        self.variables_set.update(self.dataset.global_variables)

        for node in self.dataset.nodes.values():
            self._process_condition(node.conditions)
            self._process_effect(node.effects)
            for choice in node.choices:
                self._process_condition(choice.conditions)
                self._process_effect(choice.effects)

        for var in sorted(self.variables_used - self.variables_set):
            self._add_warning(
                f"Variable '{var}' used in a condition but never set",
                suggestion=f"Add '{var}' to globalVariables",
            )

        for flag in sorted(self.flags_checked - self.flags_set):
            self._add_warning(f"Flag '{flag}' required by a condition but never set by an effect")

        for item in sorted(self.items_checked - self.items_given):
            self._add_warning(f"Item '{item}' checked but never given by an effect")

    def _process_condition(self, condition: Optional[Condition]):
        if condition is None:
            return
        self.variables_used.update(condition.variables)
        self.flags_checked.update(condition.flags)
        self.items_checked.update(condition.items)

    def _process_effect(self, effect: Optional[Effect]):
        if effect is None:
            return
        self.variables_set.update(effect.variables)
        self.flags_set.update(effect.flags)
        self.items_given.update(item for item, delta in effect.items.items() if delta > 0)

    def _validate_flow(self):
        """Check links between nodes"""
        nodes = self.dataset.nodes

        for node_id, node in nodes.items():
            for i, choice in enumerate(node.choices):
                if choice.next is None:
                    continue
                if choice.next in nodes:
                    self.incoming.setdefault(choice.next, set()).add(node_id)
                else:
                    self._add_error(
                        f"Choice {i} ('{choice.text}') links to unknown dialog '{choice.next}'",
                        node_id,
                    )

            if node.auto_next is not None:
                if node.auto_next in nodes:
                    self.incoming.setdefault(node.auto_next, set()).add(node_id)
                else:
                    self._add_error(f"autoNext links to unknown dialog '{node.auto_next}'", node_id)

            if node.choices and node.auto_next is not None:
                self._add_warning(
                    "Dialog has both choices and autoNext",
                    node_id,
                    suggestion="Players usually only see the choices; move the link into a choice",
                )

    def _add_error(self, message: str, node_id: str = None, suggestion: str = None):
        self.errors.append(ValidationIssue("error", message, node_id, suggestion))

    def _add_warning(self, message: str, node_id: str = None, suggestion: str = None):
        self.warnings.append(ValidationIssue("warning", message, node_id, suggestion))

    def report(self):
        """Echo validation results"""
        click.secho(f"\n{'=' * 60}", bold=True)
        click.secho(f"VALIDATION REPORT: {self.file_path.name}", bold=True)
        click.secho("=" * 60, bold=True)

        if self.errors:
            click.secho(f"\n❌ ERRORS ({len(self.errors)}):", fg="red", bold=True)
            for issue in self.errors:
                self._echo_issue(issue, "red")

        if self.warnings:
            click.secho(f"\n⚠️  WARNINGS ({len(self.warnings)}):", fg="yellow", bold=True)
            for issue in self.warnings:
                self._echo_issue(issue, "yellow")

        click.echo()
        if self.errors:
            click.secho("❌ VALIDATION FAILED", fg="red", bold=True)
        elif self.warnings:
            click.secho("✅ VALIDATION PASSED WITH WARNINGS", fg="green", bold=True)
        else:
            click.secho("✅ VALIDATION PASSED - No issues found!", fg="green", bold=True)

    def _echo_issue(self, issue: ValidationIssue, color: str):
        location = click.style(f"[{issue.node_id}]", fg=color, bold=True) + " " if issue.node_id else ""
        click.echo(f"  • {location}{issue.message}")
        if issue.suggestion:
            click.echo(f"    {click.style('💡 Suggestion:', fg='cyan')} {issue.suggestion}")
