"""Pytest fixtures and test utilities for the hookgate test suite."""

import subprocess
from pathlib import Path
from typing import Callable

import pytest
from loguru import logger

from hookgate.hooks import MatchMode, Rule, Severity


# ============================================================================
# LOGGING FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_loguru():
    """
    Drop loguru sinks added during a test.

    The CLI binds a sink to the sys.stderr object current at call time,
    which pytest swaps out between tests.
    """
    yield
    logger.remove()


# ============================================================================
# RULE FIXTURES
# ============================================================================


@pytest.fixture
def make_rule() -> Callable[..., Rule]:
    """
    Factory for rules with test-friendly defaults.

    Returns:
        Callable building a Rule; keyword arguments override defaults
    """

    def _make(rule_id: str = "test-rule", pattern: str = "forbidden", **kwargs) -> Rule:
        kwargs.setdefault("severity", Severity.BLOCK)
        kwargs.setdefault("mode", MatchMode.MUST_NOT_MATCH)
        return Rule(rule_id=rule_id, pattern=pattern, **kwargs)

    return _make


# ============================================================================
# GIT FIXTURES
# ============================================================================


def git(repo_path: Path, *args: str) -> str:
    """Run a git command in repo_path and return its stdout."""
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=repo_path,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def commit_file(repo_path: Path, name: str, content: str, message: str) -> str:
    """Write a file, commit it and return the new HEAD sha."""
    path = repo_path / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(repo_path, "add", name)
    git(repo_path, "commit", "--no-verify", "-m", message)
    return git(repo_path, "rev-parse", "HEAD").strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """
    Create a temporary git repository with one initial commit.

    Yields:
        Path to the repository's working tree
    """
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    git(repo_path, "init")
    git(repo_path, "config", "user.email", "test@example.com")
    git(repo_path, "config", "user.name", "Test User")
    commit_file(repo_path, "README.md", "initial content\n", "chore: initial commit")

    return repo_path


@pytest.fixture
def pushed_repo(git_repo: Path, tmp_path: Path) -> Path:
    """
    Repository whose initial commit is already pushed to a bare remote.

    The remote is named ``origin`` and the branch ``main``.
    """
    remote_path = tmp_path / "remote.git"
    subprocess.run(
        ["git", "init", "--bare", str(remote_path)],
        check=True,
        capture_output=True,
    )
    git(git_repo, "branch", "-M", "main")
    git(git_repo, "remote", "add", "origin", str(remote_path))
    git(git_repo, "push", "--no-verify", "origin", "main")
    git(git_repo, "fetch", "origin")
    return git_repo


@pytest.fixture
def run_git() -> Callable[..., str]:
    """Expose the git helper to tests."""
    return git


@pytest.fixture
def commit() -> Callable[..., str]:
    """Expose the commit helper to tests."""
    return commit_file
