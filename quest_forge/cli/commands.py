"""
CLI commands for quest forge
"""

import logging
from pathlib import Path

import click

from quest_forge.cli.play_cmd import DialoguePlayer
from quest_forge.cli.validate_cmd import DatasetValidator
from quest_forge.engine import DatasetError, DatasetLoader


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine activity to stderr")
def cli(verbose):
    """Quest Forge - Dialogue and quest state engine tools"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--detailed", "-d", is_flag=True, help="Show detailed validation output")
def validate(file_path, detailed):
    """Validate a JSON dialogue dataset"""
    validator = DatasetValidator(Path(file_path))
    is_valid = validator.validate()
    validator.report()

    if detailed and validator.dataset:
        dataset = validator.dataset
        click.echo("\n📊 Detailed Analysis:")
        click.echo("-" * 40)

        click.echo("\nCharacters:")
        for char_id, character in dataset.characters.items():
            click.echo(f"  • {char_id}: {character.name}")

        click.echo("\nEntry points:")
        for node_id in validator.entry_points:
            click.echo(f"  • {node_id}")

        click.echo("\nState:")
        click.echo(f"  Variables set:  {len(validator.variables_set)}")
        click.echo(f"  Variables used: {len(validator.variables_used)}")
        click.echo(f"  Flags set:      {len(validator.flags_set)}")
        click.echo(f"  Items given:    {len(validator.items_given)}")

    if not is_valid:
        raise SystemExit(1)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def stats(file_path):
    """Show statistics for a JSON dialogue dataset"""
    path = Path(file_path)

    try:
        dataset = DatasetLoader().parse_file(path)
    except DatasetError as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        raise SystemExit(1)

    nodes = dataset.nodes.values()
    choices = sum(len(node.choices) for node in nodes)
    conditional = sum(1 for node in nodes for c in node.choices if c.conditions is not None)

    click.echo(f"\n📊 Statistics for {path.name}")
    click.echo("=" * 50)

    click.echo("\n📝 Content:")
    click.echo(f"  Characters:          {len(dataset.characters):>6}")
    click.echo(f"  Global variables:    {len(dataset.global_variables):>6}")
    click.echo(f"  Dialogs:             {len(dataset.nodes):>6}")
    click.echo(f"  Choices:             {choices:>6}")
    click.echo(f"  Conditional choices: {conditional:>6}")

    avg_choices = choices / len(dataset.nodes) if dataset.nodes else 0
    click.echo("\n📈 Averages:")
    click.echo(f"  Choices per dialog: {avg_choices:>6.1f}")

    branching = sum(1 for node in nodes if len(node.choices) > 1)
    linear = sum(1 for node in nodes if len(node.choices) == 1 or (not node.choices and node.auto_next))
    dead_ends = sum(1 for node in nodes if node.is_terminal())

    click.echo("\n🌳 Structure:")
    click.echo(f"  Branching dialogs: {branching:>6}")
    click.echo(f"  Linear dialogs:    {linear:>6}")
    click.echo(f"  Endings:           {dead_ends:>6}")

    if dataset.warnings:
        click.echo("\n⚠️  Issues:")
        click.echo(f"  Warnings: {len(dataset.warnings):>6}")

    click.echo()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("node_id")
def show_node(file_path, node_id):
    """Display a specific dialog from a dataset"""
    path = Path(file_path)

    try:
        dataset = DatasetLoader().parse_file(path)
    except DatasetError as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        raise SystemExit(1)

    if node_id not in dataset.nodes:
        click.echo(f"❌ Dialog '{node_id}' not found in {path.name}", err=True)
        click.echo("\nAvailable dialogs:")
        for nid in sorted(dataset.nodes)[:20]:
            click.echo(f"  • {nid}")
        if len(dataset.nodes) > 20:
            click.echo(f"  ... and {len(dataset.nodes) - 20} more")
        raise SystemExit(1)

    node = dataset.nodes[node_id]
    character = dataset.characters.get(node.speaker)

    click.echo(f"\n📍 Dialog: [{node_id}]")
    click.echo("=" * 50)
    click.echo(f"\n💬 {character.name if character else node.speaker}: \"{node.text}\"")

    if node.conditions is not None:
        click.echo(f"\n🔒 Conditions: {node.conditions.to_dict()}")
    if node.effects is not None:
        click.echo(f"⚡ Effects: {node.effects.to_dict()}")

    if node.choices:
        click.echo("\n🔀 Choices:")
        for i, choice in enumerate(node.choices):
            target = choice.next or "END"
            cond_str = f" {choice.conditions.to_dict()}" if choice.conditions is not None else ""
            click.echo(f"  {i}. -> {target}: \"{choice.text}\"{cond_str}")

    if node.auto_next:
        click.echo(f"\n⏩ autoNext -> {node.auto_next}")

    click.echo()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "-s", "start_id", help="Dialog id to start from (defaults to the first dialog)")
@click.option(
    "--saves",
    "saves_dir",
    type=click.Path(file_okay=False),
    default="saves",
    envvar="QUEST_FORGE_SAVES",
    show_default=True,
    help="Directory for save files",
)
def play(file_path, start_id, saves_dir):
    """Play a dialogue dataset interactively"""
    try:
        player = DialoguePlayer(Path(file_path), Path(saves_dir), verbose=_is_verbose())
    except DatasetError as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        raise SystemExit(1)

    if start_id is None:
        if not player.dataset.nodes:
            click.echo("❌ Dataset has no dialogs", err=True)
            raise SystemExit(1)
        start_id = next(iter(player.dataset.nodes))

    player.play(start_id)


def _is_verbose() -> bool:
    ctx = click.get_current_context()
    return bool(ctx.parent and ctx.parent.params.get("verbose"))


if __name__ == "__main__":
    cli()
