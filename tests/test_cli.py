"""Tests for pvc CLI commands."""

import json
import os

import pytest
from typer.testing import CliRunner

from promptvc.cli.main import app
from promptvc.errors import AuthError
from promptvc.provider import ChatCompletionResponse, Choice, ResponseMessage, Usage
from promptvc.repository import Repository
from promptvc.runstore import TestRunStore

runner = CliRunner()


class FakeProvider:
    """Deterministic provider; token usage grows with prompt length."""

    def __init__(self):
        self.closed = False

    def create_chat_completion(self, request):
        prompt = request.messages[0].content
        return ChatCompletionResponse(
            choices=[Choice(message=ResponseMessage(content="ok"))],
            usage=Usage(prompt_tokens=len(prompt), completion_tokens=3),
        )

    def close(self):
        self.closed = True


@pytest.fixture
def fake_provider(monkeypatch):
    """Route `pvc test` to an in-process provider."""
    provider = FakeProvider()
    monkeypatch.setattr("promptvc.cli.ab_test.create_provider", lambda config: provider)
    return provider


@pytest.fixture
def two_commits(pvc_project):
    """Commit two versions of prompt.txt and return their digests."""
    path = pvc_project / "prompt.txt"
    _ = path.write_text("Summarize {{topic}}")
    assert runner.invoke(app, ["add", "prompt.txt"]).exit_code == 0
    assert runner.invoke(app, ["commit", "-m", "v1"]).exit_code == 0
    _ = path.write_text("Summarize {{topic}} in three detailed bullet points")
    assert runner.invoke(app, ["add", "prompt.txt"]).exit_code == 0
    assert runner.invoke(app, ["commit", "-m", "v2"]).exit_code == 0
    digests = [digest for digest, _ in Repository(pvc_project).history()]
    return digests[1], digests[0]


@pytest.fixture
def dataset_file(pvc_project):
    """Write a three-case JSON dataset."""
    path = pvc_project / "cases.json"
    cases = [{"name": f"case-{t}", "inputs": {"topic": t}} for t in ("AI", "ML", "databases")]
    _ = path.write_text(json.dumps({"testCases": cases}))
    return path


class TestInitCommand:
    """Tests for pvc init command."""

    def test_init_creates_directory(self, temp_dir):
        """Test that init creates the .pvc layout."""
        os.chdir(temp_dir)

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Initialized" in result.stdout
        assert (temp_dir / ".pvc" / "objects").is_dir()
        assert (temp_dir / ".pvc" / "test-runs").is_dir()
        assert (temp_dir / ".pvc" / "index.json").is_file()
        assert (temp_dir / ".pvc" / "config.yaml").is_file()

    def test_init_already_initialized(self, pvc_project):
        """Test init when already initialized."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Already initialized" in result.stdout


class TestAddCommitCommands:
    """Tests for pvc add and pvc commit."""

    def test_add_and_commit(self, pvc_project):
        """Test staging a file and committing it."""
        _ = (pvc_project / "prompt.txt").write_text("Hello {{name}}")

        result = runner.invoke(app, ["add", "prompt.txt"])
        assert result.exit_code == 0
        assert "prompt.txt" in result.stdout

        result = runner.invoke(app, ["commit", "-m", "Initial prompt"])
        assert result.exit_code == 0
        head = Repository(pvc_project).head()
        assert head is not None
        assert f"[{head[:7]}] Initial prompt" in result.stdout

    def test_add_binary_file(self, pvc_project):
        """Test that a non-UTF-8 file gets a one-line error, not a traceback."""
        _ = (pvc_project / "bin.txt").write_bytes(b"\xff\xfe\x00")

        result = runner.invoke(app, ["add", "bin.txt"])

        assert result.exit_code == 1
        assert "Not a UTF-8 text file" in result.stdout
        assert not isinstance(result.exception, UnicodeDecodeError)

    def test_add_missing_file(self, pvc_project):
        """Test adding a file that does not exist."""
        result = runner.invoke(app, ["add", "missing.txt"])

        assert result.exit_code == 4
        assert "File not found" in result.stdout

    def test_commit_nothing_staged(self, pvc_project):
        """Test committing with an empty index."""
        result = runner.invoke(app, ["commit", "-m", "empty"])

        assert result.exit_code == 3
        assert "Nothing to commit" in result.stdout

    def test_commit_without_message(self, pvc_project):
        """Test committing without -m."""
        _ = (pvc_project / "prompt.txt").write_text("Hello")
        _ = runner.invoke(app, ["add", "prompt.txt"])

        result = runner.invoke(app, ["commit"])

        assert result.exit_code == 1
        assert "Commit message required" in result.stdout

    def test_outside_repository(self, temp_dir):
        """Test commands run outside any repository."""
        os.chdir(temp_dir)

        for args in (["add", "x.txt"], ["commit", "-m", "x"], ["log"], ["diff"], ["test-log"]):
            result = runner.invoke(app, args)
            assert result.exit_code == 2, args
            assert "pvc init" in result.stdout


class TestLogCommand:
    """Tests for pvc log."""

    def test_log_empty(self, pvc_project):
        """Test log before any commit."""
        result = runner.invoke(app, ["log"])

        assert result.exit_code == 0
        assert "No commits yet" in result.stdout

    def test_log_newest_first(self, two_commits):
        """Test that log lists commits newest first."""
        first, second = two_commits

        result = runner.invoke(app, ["log"])

        assert result.exit_code == 0
        assert result.stdout.index(second) < result.stdout.index(first)
        assert "v1" in result.stdout
        assert "v2" in result.stdout

    def test_log_limit(self, two_commits):
        """Test limiting the number of commits shown."""
        first, second = two_commits

        result = runner.invoke(app, ["log", "--limit", "1"])

        assert second in result.stdout
        assert first not in result.stdout


class TestDiffCommand:
    """Tests for pvc diff."""

    def test_diff_no_commits(self, pvc_project):
        """Test diff in an empty repository."""
        result = runner.invoke(app, ["diff"])

        assert result.exit_code == 0
        assert "No differences found (no commits yet)" in result.stdout

    def test_diff_two_commits(self, two_commits):
        """Test diff between two commits."""
        first, second = two_commits

        result = runner.invoke(app, ["diff", first[:7], second[:7]])

        assert result.exit_code == 0
        assert "-Summarize {{topic}}" in result.stdout
        assert "+Summarize {{topic}} in three detailed bullet points" in result.stdout

    def test_diff_head_against_working_copy(self, two_commits, pvc_project):
        """Test diff of HEAD against the working file."""
        _ = (pvc_project / "prompt.txt").write_text("Brand new prompt")

        result = runner.invoke(app, ["diff"])

        assert result.exit_code == 0
        assert "+Brand new prompt" in result.stdout

    def test_diff_clean_working_copy(self, two_commits):
        """Test diff when nothing changed since HEAD."""
        result = runner.invoke(app, ["diff"])

        assert result.exit_code == 0
        assert "No differences found" in result.stdout

    def test_diff_binary_working_copy(self, two_commits, pvc_project):
        """Test diff when a tracked file was replaced by binary content."""
        _ = (pvc_project / "prompt.txt").write_bytes(b"\xff\xfe\x00")

        result = runner.invoke(app, ["diff"])

        assert result.exit_code == 1
        assert "Not a UTF-8 text file: prompt.txt" in result.stdout

    def test_diff_unknown_ref(self, two_commits):
        """Test diff with a reference that does not resolve."""
        result = runner.invoke(app, ["diff", "0000000"])

        assert result.exit_code == 4
        assert "Commit not found" in result.stdout


class TestTestCommand:
    """Tests for pvc test."""

    def test_missing_api_key(self, two_commits, dataset_file):
        """Test that a missing credential exits with code 3."""
        result = runner.invoke(app, ["test", "HEAD", "HEAD", "--dataset", "cases.json"])

        assert result.exit_code == 3
        assert "OPENAI_API_KEY" in result.stdout

    def test_missing_dataset_option(self, two_commits, fake_provider):
        """Test running without --dataset."""
        result = runner.invoke(app, ["test", "HEAD", "HEAD"])

        assert result.exit_code == 1
        assert "--dataset" in result.stdout

    def test_unknown_commit(self, two_commits, dataset_file, fake_provider):
        """Test that an unresolvable reference exits with code 4."""
        result = runner.invoke(app, ["test", "0000000", "HEAD", "--dataset", "cases.json"])

        assert result.exit_code == 4
        assert fake_provider.closed

    def test_undecodable_dataset(self, two_commits, pvc_project, fake_provider):
        """Test that a dataset with invalid UTF-8 exits with code 4."""
        _ = (pvc_project / "d.json").write_bytes(b"\xff")

        result = runner.invoke(app, ["test", "HEAD", "HEAD", "--dataset", "d.json"])

        assert result.exit_code == 4
        assert "Failed to read file" in result.stdout

    def test_bad_dataset(self, two_commits, pvc_project, fake_provider):
        """Test that an unparseable dataset exits with code 4."""
        _ = (pvc_project / "bad.json").write_text("{not json")

        result = runner.invoke(app, ["test", "HEAD", "HEAD", "--dataset", "bad.json"])

        assert result.exit_code == 4
        assert "Invalid JSON format" in result.stdout

    def test_invalid_concurrency(self, two_commits, dataset_file, fake_provider):
        """Test that concurrency below one is rejected."""
        result = runner.invoke(
            app, ["test", "HEAD", "HEAD", "--dataset", "cases.json", "--concurrency", "0"]
        )

        assert result.exit_code == 1
        assert "Concurrency" in result.stdout

    def test_run_and_save(self, two_commits, dataset_file, pvc_project, fake_provider):
        """Test a full A/B run saved to the test run store."""
        first, second = two_commits

        result = runner.invoke(
            app,
            ["test", first[:7], second[:7], "--dataset", "cases.json", "--concurrency", "2", "--save"],
        )

        assert result.exit_code == 0, result.stdout
        assert "[3/3]" in result.stdout
        assert "Statistical Analysis" in result.stdout
        assert "Test run saved" in result.stdout
        assert fake_provider.closed

        runs = TestRunStore(pvc_project / ".pvc" / "test-runs").list_runs()
        assert len(runs) == 1
        run = runs[0]
        assert run.commit_a == first
        assert run.commit_b == second
        assert run.model == "gpt-4"
        assert run.results.commit_a.summary.success_count == 3
        # Prompt B is longer, so every case uses more input tokens
        assert run.statistics.tokens.difference > 0

    def test_run_without_save(self, two_commits, dataset_file, pvc_project, fake_provider):
        """Test that results are not persisted without --save."""
        result = runner.invoke(app, ["test", "HEAD", "HEAD", "--dataset", "cases.json"])

        assert result.exit_code == 0, result.stdout
        assert "Statistical Analysis" in result.stdout
        assert list((pvc_project / ".pvc" / "test-runs").iterdir()) == []

    def test_missing_key_reported_before_bad_refs(self, two_commits, dataset_file, monkeypatch):
        """Test that credential errors take precedence over reference errors."""

        def no_key(config):
            msg = "OPENAI_API_KEY environment variable is required"
            raise AuthError(msg)

        monkeypatch.setattr("promptvc.cli.ab_test.create_provider", no_key)

        result = runner.invoke(app, ["test", "0000000", "HEAD", "--dataset", "cases.json"])

        assert result.exit_code == 3


class TestTestRunCommands:
    """Tests for pvc test-log and pvc test-show."""

    def test_test_log_empty(self, pvc_project):
        """Test listing with no saved runs."""
        result = runner.invoke(app, ["test-log"])

        assert result.exit_code == 0
        assert "No test runs found" in result.stdout

    def test_log_and_show_saved_run(self, two_commits, dataset_file, pvc_project, fake_provider):
        """Test listing and showing a saved run by ID prefix."""
        first, second = two_commits
        result = runner.invoke(
            app, ["test", first[:7], second[:7], "--dataset", "cases.json", "--save"]
        )
        assert result.exit_code == 0, result.stdout
        run = TestRunStore(pvc_project / ".pvc" / "test-runs").list_runs()[0]

        result = runner.invoke(app, ["test-log"])
        assert result.exit_code == 0
        assert "Showing 1 of 1 test runs" in result.stdout

        result = runner.invoke(app, ["test-show", run.id[:10]])
        assert result.exit_code == 0
        assert f"Test run {run.id}" in result.stdout
        assert first in result.stdout
        assert "case-AI" in result.stdout

    def test_show_unknown_run(self, pvc_project):
        """Test showing a run that does not exist."""
        result = runner.invoke(app, ["test-show", "nope"])

        assert result.exit_code == 4
        assert "Test run not found" in result.stdout
