# Copyright (c) Syntropy Systems
"""pvc test-log and test-show commands."""
from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from promptvc.cli.report import format_timestamp, render_cases, render_comparison
from promptvc.errors import PvcError
from promptvc.hashing import short_hash
from promptvc.repository import Repository
from promptvc.runstore import TestRunStore

console = Console()


def _open_store() -> TestRunStore:
    return TestRunStore(Repository.discover().test_runs_dir)


def run_log(
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        help="Number of test runs to show",
    ),
) -> None:
    """List saved test runs, newest first."""
    try:
        saved = _open_store().list_runs()
    except PvcError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e

    if not saved:
        console.print("[dim]No test runs found[/dim]")
        console.print("\nRun a test with: pvc test <commit-a> <commit-b> --dataset <file> --save")
        return

    shown = saved[: max(limit, 0)]

    table = Table(show_header=True, header_style="bold")
    table.add_column("Run ID")
    table.add_column("Timestamp")
    table.add_column("Commits")
    table.add_column("Model")
    table.add_column("Cases", justify="right")
    table.add_column("Result")

    for run in shown:
        result = (
            "[green]Significant[/green]"
            if run.statistics.any_significant
            else "[dim]No difference[/dim]"
        )
        table.add_row(
            run.id,
            format_timestamp(run.timestamp),
            f"{short_hash(run.commit_a)} vs {short_hash(run.commit_b)}",
            escape(run.model),
            str(len(run.results.commit_a.test_cases)),
            result,
        )

    console.print(table)
    console.print(f"\n[dim]Showing {len(shown)} of {len(saved)} test runs[/dim]")


def run_show(
    run_id: str = typer.Argument(..., help="Test run ID or unique ID prefix"),
) -> None:
    """Show details of a saved test run."""
    try:
        run = _open_store().find(run_id)
    except PvcError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e

    console.print(f"[bold]Test run {run.id}[/bold]\n")
    console.print(f"  [dim]Timestamp:[/dim] {format_timestamp(run.timestamp)}")
    console.print(f"  [dim]Dataset:[/dim]   {escape(run.dataset)}")
    console.print(f"  [dim]Model:[/dim]     {escape(run.model)}")
    console.print(f"  [dim]Commit A:[/dim]  {run.commit_a}")
    console.print(f"  [dim]Commit B:[/dim]  {run.commit_b}")
    console.print()

    render_comparison(run, console)

    console.print("\n[bold]Test Cases[/bold]")
    render_cases(run, console)
