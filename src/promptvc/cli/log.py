# Copyright (c) Syntropy Systems
"""pvc log command."""

from itertools import islice

import typer
from rich.console import Console
from rich.markup import escape

from promptvc.cli.report import format_timestamp
from promptvc.errors import PvcError
from promptvc.repository import Repository

console = Console()


def log(
    limit: int = typer.Option(20, "--limit", "-n", help="Max commits to show"),
) -> None:
    """Show commit history, newest first."""
    try:
        repo = Repository.discover()
        entries = list(islice(repo.history(), max(limit, 0)))
    except PvcError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e

    if not entries:
        console.print("[dim]No commits yet[/dim]")
        return

    for i, (digest, entry) in enumerate(entries):
        if i:
            console.print()
        console.print(f"[yellow]commit {digest}[/yellow]")
        console.print(f"[dim]Date:[/dim]  {format_timestamp(entry.timestamp)}")
        files = ", ".join(sorted(entry.tree))
        console.print(f"[dim]Files:[/dim] {escape(files)}")
        console.print(f"\n    {escape(entry.message)}")
