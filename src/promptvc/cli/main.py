# Copyright (c) Syntropy Systems
"""Main CLI entry point for pvc."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from promptvc.cli.ab_test import ab_test
from promptvc.cli.add import add
from promptvc.cli.commit import commit
from promptvc.cli.diff import diff
from promptvc.cli.init_cmd import init
from promptvc.cli.log import log
from promptvc.cli.runs import run_log, run_show

app = typer.Typer(
    name="pvc",
    help=(
        "Version control for LLM prompts. Commit prompt versions, "
        "A/B test them against a dataset, compare the numbers."
    ),
    no_args_is_help=True,
    add_completion=False,
)


def configure_logging(verbose: bool) -> None:  # noqa: FBT001
    """Route promptvc logs through Rich on stderr."""
    package_logger = logging.getLogger("promptvc")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        )


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """Version control for LLM prompts."""
    configure_logging(verbose)


# Register commands
_ = app.command()(init)
_ = app.command()(add)
_ = app.command()(commit)
_ = app.command()(log)
_ = app.command()(diff)
_ = app.command(name="test")(ab_test)
_ = app.command(name="test-log")(run_log)
_ = app.command(name="test-show")(run_show)


if __name__ == "__main__":
    app()
