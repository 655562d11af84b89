# Copyright (c) Syntropy Systems
"""A/B comparison of two committed prompt versions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from promptvc.hashing import short_hash
from promptvc.models.experiment import RunResults, TestRun
from promptvc.repository import commit_timestamp
from promptvc.runstore import generate_run_id
from promptvc.stats import compare_versions

if TYPE_CHECKING:
    from promptvc.engine import TestRunner
    from promptvc.models.experiment import Dataset
    from promptvc.repository import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptVersion:
    """A prompt resolved from a commit; one arm of a comparison."""

    ref: str
    commit: str
    prompt: str

    @property
    def label(self) -> str:
        """Short commit hash for display."""
        return short_hash(self.commit)


def resolve_version(repo: Repository, ref: str, path: str | None = None) -> PromptVersion:
    """Resolve ``ref`` and load its prompt text."""
    commit = repo.resolve(ref)
    return PromptVersion(ref=ref, commit=commit, prompt=repo.load_prompt(commit, path))


def run_ab_test(
    runner: TestRunner,
    version_a: PromptVersion,
    version_b: PromptVersion,
    dataset: Dataset,
    dataset_label: str,
    on_arm: Optional[Callable[[str, PromptVersion], None]] = None,
) -> TestRun:
    """Execute both prompts independently over ``dataset`` and compare them.

    ``on_arm`` is called with ``("A"|"B", version)`` before each arm starts.
    """
    arms = (("A", version_a), ("B", version_b))
    results = []
    for arm, version in arms:
        if on_arm is not None:
            on_arm(arm, version)
        logger.debug("Running arm %s (%s) over %d cases", arm, version.label, len(dataset.test_cases))
        results.append(runner.run(dataset, version.prompt))

    result_a, result_b = results
    return TestRun(
        id=generate_run_id(version_a.commit, version_b.commit),
        timestamp=commit_timestamp(),
        commit_a=version_a.commit,
        commit_b=version_b.commit,
        dataset=dataset_label,
        model=runner.options.model,
        results=RunResults(commit_a=result_a, commit_b=result_b),
        statistics=compare_versions(result_a, result_b),
    )
