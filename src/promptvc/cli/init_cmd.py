# Copyright (c) Syntropy Systems
"""pvc init command."""

from pathlib import Path

import typer
from rich.console import Console

from promptvc.repository import Repository

console = Console()


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new prompt repository.

    Creates a .pvc directory with object storage, staging index and configuration.
    """
    repo = Repository(path)

    if repo.is_initialized():
        console.print(f"[yellow]Already initialized:[/yellow] {repo.pvc_dir}")
        return

    repo.init()

    console.print(f"[green]Initialized empty prompt repository:[/green] {repo.pvc_dir}")
    console.print(f"  [dim]config:[/dim] {repo.config_path}")
    console.print(f"  [dim]objects:[/dim] {repo.objects_dir}")
    console.print(f"  [dim]test runs:[/dim] {repo.test_runs_dir}")
