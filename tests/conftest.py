# Copyright (c) Syntropy Systems
"""Pytest fixtures for promptvc tests."""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Store original cwd at module load time
_original_cwd = Path.cwd()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def pvc_project(temp_dir: Path) -> Generator[Path, None, None]:
    """Create an initialized prompt repository and chdir into it."""
    from promptvc.repository import Repository

    Repository(temp_dir).init()

    # Change to temp directory
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def repo(pvc_project: Path):
    """Repository object for the test project."""
    from promptvc.repository import Repository

    return Repository(pvc_project)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and endpoints out of tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
