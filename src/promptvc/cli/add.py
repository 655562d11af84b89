# Copyright (c) Syntropy Systems
"""pvc add command."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from promptvc.errors import PvcError
from promptvc.repository import Repository

console = Console()


def add(
    path: Path = typer.Argument(..., help="Prompt file or directory to stage"),
) -> None:
    """Stage a prompt file, or every file directly inside a directory."""
    try:
        repo = Repository.discover()
        staged = repo.add(path)
    except PvcError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e

    if not staged:
        console.print(f"[yellow]No files to stage in[/yellow] {escape(str(path))}")
        return

    for staged_path in staged:
        console.print(f"[green]Staged:[/green] {escape(staged_path)}")
