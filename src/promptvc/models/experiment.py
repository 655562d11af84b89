# Copyright (c) Syntropy Systems
"""Pydantic models for datasets, per-case results and comparison records."""

from __future__ import annotations

from typing import ClassVar, Optional

from pydantic import Field

from .base import RecordModel


class TestCase(RecordModel):
    """One named input scenario evaluated against a prompt template."""

    __test__: ClassVar[bool] = False

    name: str
    inputs: dict[str, str] = Field(default_factory=dict)
    expected_output: Optional[str] = None


class Dataset(RecordModel):
    """A list of test cases."""

    test_cases: list[TestCase] = Field(default_factory=list)


class TestCaseResult(RecordModel):
    """Outcome of executing one test case.

    Failed cases carry zeroed metrics and the last error message.
    """

    __test__: ClassVar[bool] = False

    name: str
    success: bool
    latency: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    output: Optional[str] = None
    error: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        """Input plus output tokens."""
        return self.input_tokens + self.output_tokens


class MetricsSummary(RecordModel):
    """Aggregate metrics for one version's run."""

    avg_latency: float = 0.0
    avg_input_tokens: float = 0.0
    avg_output_tokens: float = 0.0
    avg_cost: float = 0.0
    success_rate: float = 0.0
    total_count: int = 0
    success_count: int = 0


class VersionResult(RecordModel):
    """Per-case results and summary for one prompt version."""

    test_cases: list[TestCaseResult] = Field(default_factory=list)
    summary: MetricsSummary = Field(default_factory=MetricsSummary)


class TTestResult(RecordModel):
    """Welch t-test outcome for one metric."""

    mean_a: float
    mean_b: float
    difference: float
    p_value: float
    significant: bool
    confidence_interval: tuple[float, float]
    sample_size_a: int
    sample_size_b: int


class StatisticalComparison(RecordModel):
    """Per-metric t-tests between two versions."""

    latency: TTestResult
    cost: TTestResult
    tokens: TTestResult

    @property
    def any_significant(self) -> bool:
        """Whether any compared metric differs significantly."""
        return self.latency.significant or self.cost.significant or self.tokens.significant


class RunResults(RecordModel):
    """Results keyed by arm."""

    commit_a: VersionResult
    commit_b: VersionResult


class TestRun(RecordModel):
    """A completed A/B comparison."""

    __test__: ClassVar[bool] = False

    id: str
    timestamp: str
    commit_a: str
    commit_b: str
    dataset: str
    model: str
    results: RunResults
    statistics: StatisticalComparison
