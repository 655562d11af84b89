# Copyright (c) Syntropy Systems
"""Summary statistics for one version's test results."""
from __future__ import annotations

from typing import TYPE_CHECKING

from promptvc.models.experiment import MetricsSummary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from promptvc.models.experiment import TestCaseResult


def _average(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def summarize(results: Sequence[TestCaseResult]) -> MetricsSummary:
    """Reduce per-case results to a MetricsSummary.

    Averages cover successful cases only; the success rate covers all cases.
    """
    total_count = len(results)
    successes = [r for r in results if r.success]
    success_count = len(successes)

    if success_count == 0:
        return MetricsSummary(total_count=total_count, success_count=0)

    return MetricsSummary(
        avg_latency=round(_average([r.latency for r in successes]), 2),
        avg_input_tokens=round(_average([r.input_tokens for r in successes]), 2),
        avg_output_tokens=round(_average([r.output_tokens for r in successes]), 2),
        avg_cost=round(_average([r.cost for r in successes]), 6),
        success_rate=round(success_count / total_count, 2),
        total_count=total_count,
        success_count=success_count,
    )
