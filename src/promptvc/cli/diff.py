# Copyright (c) Syntropy Systems
"""pvc diff command."""
from __future__ import annotations

import difflib
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from promptvc.errors import NotFoundError, PvcError
from promptvc.hashing import short_hash
from promptvc.repository import Repository

console = Console()

WORKING_LABEL = "working copy"


def diff_lines(
    old: dict[str, str],
    new: dict[str, str],
    old_label: str,
    new_label: str,
) -> list[str]:
    """Unified diff of two path -> content mappings, path by path."""
    lines: list[str] = []
    for path in sorted(set(old) | set(new)):
        before = old.get(path, "")
        after = new.get(path, "")
        if before == after:
            continue
        lines.extend(
            difflib.unified_diff(
                before.splitlines(keepends=True),
                after.splitlines(keepends=True),
                fromfile=f"a/{path}",
                tofile=f"b/{path}",
                fromfiledate=old_label,
                tofiledate=new_label,
            )
        )
    return [line.rstrip("\n") for line in lines]


def _style(line: str) -> str:
    if line.startswith(("---", "+++")):
        return "bold"
    if line.startswith("@@"):
        return "cyan"
    if line.startswith("+"):
        return "green"
    if line.startswith("-"):
        return "red"
    return ""


def _tree(repo: Repository, ref: str) -> tuple[str, dict[str, str]]:
    digest = repo.resolve(ref)
    entry = repo.get_commit(digest)
    if entry is None:
        msg = f"Commit not found: {ref}"
        raise NotFoundError(msg)
    return short_hash(digest), repo.tree_contents(entry.tree)


def diff(
    commit_a: Optional[str] = typer.Argument(
        None,
        help="Base commit (default: HEAD)",
    ),
    commit_b: Optional[str] = typer.Argument(
        None,
        help="Commit to compare against (default: working copies)",
    ),
) -> None:
    """Show differences between commits, or between a commit and working files."""
    try:
        repo = Repository.discover()
        if repo.head() is None:
            console.print("No differences found (no commits yet)")
            return

        old_label, old = _tree(repo, commit_a or "HEAD")
        if commit_b is None:
            new_label = WORKING_LABEL
            new = repo.working_tree(old)
        else:
            new_label, new = _tree(repo, commit_b)
    except PvcError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from e

    lines = diff_lines(old, new, old_label, new_label)
    if not lines:
        console.print("No differences found")
        return

    for line in lines:
        console.print(Text(line, style=_style(line)))
