# Copyright (c) Syntropy Systems
"""Persistence for completed A/B test runs (.pvc/test-runs/<id>.json)."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from promptvc.errors import CorruptRepositoryError, NotFoundError, ValidationError
from promptvc.hashing import short_hash
from promptvc.models.experiment import TestRun
from promptvc.store import atomic_write

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def generate_run_id(commit_a: str, commit_b: str, now_ms: int | None = None) -> str:
    """Build a run ID of the form ``<shortA>-<shortB>-<unixMillis>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{short_hash(commit_a)}-{short_hash(commit_b)}-{now_ms}"


def _sort_key(run: TestRun) -> float:
    try:
        return datetime.fromisoformat(run.timestamp.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


class TestRunStore:
    """Reads and writes TestRun records."""

    __test__ = False

    storage_dir: Path

    def __init__(self, storage_dir: Path) -> None:
        self.storage_dir = storage_dir

    def _path(self, run_id: str) -> Path:
        if not run_id or "/" in run_id or "\\" in run_id or run_id.startswith("."):
            msg = f"Invalid test run ID: {run_id!r}"
            raise ValidationError(msg)
        return self.storage_dir / f"{run_id}.json"

    def save(self, run: TestRun) -> Path:
        """Persist a run and return its file path."""
        path = self._path(run.id)
        atomic_write(path, run.model_dump_json(by_alias=True, indent=2).encode("utf-8"))
        logger.debug("Saved test run %s", run.id)
        return path

    def load(self, run_id: str) -> TestRun:
        """Load a run by exact ID."""
        path = self._path(run_id)
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            msg = f"Test run not found: {run_id}"
            raise NotFoundError(msg) from e
        try:
            return TestRun.model_validate_json(data)
        except PydanticValidationError as e:
            msg = f"Malformed test run file: {path}"
            raise CorruptRepositoryError(msg) from e

    def exists(self, run_id: str) -> bool:
        """Check if a run with this exact ID is stored."""
        return self._path(run_id).is_file()

    def ids(self) -> list[str]:
        """IDs of all stored runs (unordered)."""
        if not self.storage_dir.is_dir():
            return []
        return [p.stem for p in self.storage_dir.glob("*.json") if not p.name.startswith(".")]

    def list_runs(self) -> list[TestRun]:
        """All stored runs, newest first."""
        runs = [self.load(run_id) for run_id in self.ids()]
        runs.sort(key=_sort_key, reverse=True)
        return runs

    def find(self, id_or_prefix: str) -> TestRun:
        """Load a run by exact ID or unique ID prefix."""
        if self.exists(id_or_prefix):
            return self.load(id_or_prefix)

        matches = sorted(run_id for run_id in self.ids() if run_id.startswith(id_or_prefix))
        if not matches:
            msg = f"Test run not found: {id_or_prefix}"
            raise NotFoundError(msg)
        if len(matches) > 1:
            shown = ", ".join(matches[:5])
            msg = f"Ambiguous test run ID '{id_or_prefix}', matches: {shown}"
            raise ValidationError(msg)
        return self.load(matches[0])
