# Copyright (c) Syntropy Systems
"""Rich rendering of A/B comparison results."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

from promptvc.hashing import short_hash

if TYPE_CHECKING:
    from rich.console import Console

    from promptvc.models.experiment import TestCaseResult, TestRun, TTestResult, VersionResult

MAX_FAILURES_SHOWN = 5


def format_timestamp(timestamp: str) -> str:
    """Format an ISO timestamp in local time."""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_diff(difference: float, significant: bool, decimals: int = 4) -> str:  # noqa: FBT001
    """Signed difference with a significance marker."""
    indicator = "[green]✓[/green]" if significant else "[dim]~[/dim]"
    return f"{indicator} {difference:+.{decimals}f}"


def _significance(result: TTestResult) -> str:
    return "[green]Yes[/green]" if result.significant else "No"


def render_comparison(run: TestRun, console: Console) -> None:
    """Print the summary table and statistical analysis for a run."""
    summary_a = run.results.commit_a.summary
    summary_b = run.results.commit_b.summary
    stats = run.statistics

    table = Table(show_header=True, header_style="bold")
    table.add_column("Metric", style="dim")
    table.add_column(f"{short_hash(run.commit_a)} (A)", justify="right")
    table.add_column(f"{short_hash(run.commit_b)} (B)", justify="right")
    table.add_column("Diff", justify="right")
    table.add_column("Significant")

    table.add_row(
        "Avg Latency (ms)",
        f"{summary_a.avg_latency:.2f}",
        f"{summary_b.avg_latency:.2f}",
        format_diff(stats.latency.difference, stats.latency.significant, 2),
        _significance(stats.latency),
    )
    table.add_row(
        "Avg Input Tokens",
        f"{summary_a.avg_input_tokens:.2f}",
        f"{summary_b.avg_input_tokens:.2f}",
        format_diff(summary_b.avg_input_tokens - summary_a.avg_input_tokens, False, 2),
        "-",
    )
    table.add_row(
        "Avg Output Tokens",
        f"{summary_a.avg_output_tokens:.2f}",
        f"{summary_b.avg_output_tokens:.2f}",
        format_diff(summary_b.avg_output_tokens - summary_a.avg_output_tokens, False, 2),
        "-",
    )
    table.add_row(
        "Total Tokens",
        f"{stats.tokens.mean_a:.2f}",
        f"{stats.tokens.mean_b:.2f}",
        format_diff(stats.tokens.difference, stats.tokens.significant, 2),
        _significance(stats.tokens),
    )
    table.add_row(
        "Avg Cost ($)",
        f"{summary_a.avg_cost:.6f}",
        f"{summary_b.avg_cost:.6f}",
        format_diff(stats.cost.difference, stats.cost.significant, 6),
        _significance(stats.cost),
    )
    table.add_row(
        "Success Rate",
        f"{summary_a.success_rate * 100:.1f}%",
        f"{summary_b.success_rate * 100:.1f}%",
        "-",
        "-",
    )

    console.print(table)

    console.print("\n[bold]Statistical Analysis[/bold]")
    for label, result in (("Latency", stats.latency), ("Cost", stats.cost), ("Tokens", stats.tokens)):
        verdict = "significant" if result.significant else "not significant"
        low, high = result.confidence_interval
        console.print(
            f"  [dim]{label}:[/dim] p={result.p_value:.6f} ({verdict}), "
            f"95% CI {escape(f'[{low:.4f}, {high:.4f}]')}, "
            f"n={result.sample_size_a}/{result.sample_size_b}"
        )

    if stats.any_significant:
        console.print("\n[green]Statistically significant differences detected[/green]")
    else:
        console.print("\n[dim]No statistically significant differences detected[/dim]")

    render_failures("A", run.results.commit_a, console)
    render_failures("B", run.results.commit_b, console)


def render_failures(arm: str, result: VersionResult, console: Console) -> None:
    """Summarize failed cases for one arm, if any."""
    failed = [tc for tc in result.test_cases if not tc.success]
    if not failed:
        return

    console.print(
        f"\n[yellow]{len(failed)} of {len(result.test_cases)} cases failed for {arm}[/yellow]"
    )
    for tc in failed[:MAX_FAILURES_SHOWN]:
        console.print(f"  [dim]{escape(tc.name)}:[/dim] {escape(tc.error or 'Unknown error')}")
    if len(failed) > MAX_FAILURES_SHOWN:
        console.print(f"  [dim]... and {len(failed) - MAX_FAILURES_SHOWN} more[/dim]")


def _case_latency(tc: TestCaseResult | None) -> str:
    if tc is None:
        return "-"
    return f"{tc.latency:.0f}ms" if tc.success else "[red]FAIL[/red]"


def _case_tokens(tc: TestCaseResult | None) -> str:
    if tc is None or not tc.success:
        return "-"
    return str(tc.total_tokens)


def render_cases(run: TestRun, console: Console) -> None:
    """Print per-case latency and token counts side by side."""
    cases_a = run.results.commit_a.test_cases
    cases_b = run.results.commit_b.test_cases

    table = Table(show_header=True, header_style="bold")
    table.add_column("Test Case")
    table.add_column("A Latency", justify="right")
    table.add_column("B Latency", justify="right")
    table.add_column("A Tokens", justify="right")
    table.add_column("B Tokens", justify="right")
    table.add_column("Status")

    for i in range(max(len(cases_a), len(cases_b))):
        tc_a = cases_a[i] if i < len(cases_a) else None
        tc_b = cases_b[i] if i < len(cases_b) else None
        source = tc_a if tc_a is not None else tc_b
        name = source.name if source is not None else "-"
        ok = tc_a is not None and tc_b is not None and tc_a.success and tc_b.success
        table.add_row(
            escape(name),
            _case_latency(tc_a),
            _case_latency(tc_b),
            _case_tokens(tc_a),
            _case_tokens(tc_b),
            "[green]✓[/green]" if ok else "[red]✗[/red]",
        )

    console.print(table)
