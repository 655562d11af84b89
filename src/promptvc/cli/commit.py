# Copyright (c) Syntropy Systems
"""pvc commit command."""

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from promptvc.errors import PvcError, ValidationError
from promptvc.hashing import short_hash
from promptvc.repository import Repository

console = Console()


def commit(
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Commit message",
    ),
) -> None:
    """Record the staged prompts as a new commit."""
    try:
        repo = Repository.discover()
        if message is None:
            msg = 'Commit message required (-m "message")'
            raise ValidationError(msg)
        digest = repo.commit(message)
    except PvcError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e

    console.print(f"[yellow]{escape(f'[{short_hash(digest)}]')}[/yellow] {escape(message.strip())}")
