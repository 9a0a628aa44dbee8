"""Command-line CRUD against the todo table.

    python examples/todo/scripts.py create
    python examples/todo/scripts.py read <id>
    python examples/todo/scripts.py update <id>
    python examples/todo/scripts.py destroy <id>
    python examples/todo/scripts.py list [cursor] [limit]
"""

import asyncio
import uuid

import click

from app import TodoModel


def _run(coro):
    return asyncio.run(coro)


async def _ensure_table() -> None:
    await TodoModel.instance().adapter.create_table()


@click.group()
def cli():
    """Todo table commands."""
    _run(_ensure_table())


@cli.command()
def create():
    """Create a demo todo."""
    todo = _run(TodoModel.instance().create({"todo": str(uuid.uuid4()), "title": "demo todo"}))
    click.echo(todo)


@cli.command()
@click.argument("todo_id")
def read(todo_id: str):
    click.echo(_run(TodoModel.instance().get({"todo": todo_id, "type": "todo"})))


@cli.command()
@click.argument("todo_id")
def update(todo_id: str):
    """Mark a todo completed."""
    click.echo(_run(TodoModel.instance().update({"todo": todo_id, "completed": True})))


@cli.command()
@click.argument("todo_id")
def destroy(todo_id: str):
    result = _run(TodoModel.instance().delete({"todo": todo_id, "type": "todo"}))
    click.echo(result.to_dict())


@cli.command(name="list")
@click.argument("cursor", required=False)
@click.argument("limit", required=False, type=int)
def list_todos(cursor: str | None, limit: int | None):
    page = _run(TodoModel.instance().list(cursor, limit or 10))
    click.echo(page.to_dict())


if __name__ == "__main__":
    cli()
