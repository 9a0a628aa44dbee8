"""Generate CLI commands - model and controller scaffolding."""

from pathlib import Path

import click

from dmvc.generator import generate_controller, generate_model

GENERATORS = {
    "model": generate_model,
    "controller": generate_controller,
}


@click.command()
@click.argument("kind", type=click.Choice(sorted(GENERATORS)))
@click.argument("name")
@click.option(
    "--base-dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Project root to write into (defaults to the current directory).",
)
def generate(kind: str, name: str, base_dir: Path | None):
    """Generate a model or controller module for NAME."""
    root = base_dir if base_dir is not None else Path.cwd()
    try:
        filepath = GENERATORS[kind](name, root)
    except FileExistsError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    try:
        shown = filepath.relative_to(Path.cwd())
    except ValueError:
        shown = filepath
    click.echo(f"Created {kind}: {shown}")
