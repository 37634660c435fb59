"""
Pytest configuration and shared fixtures for Preview Reaper tests.
"""

import subprocess
import tempfile
from collections.abc import Callable, Sequence
from datetime import timedelta
from pathlib import Path
from typing import Generator

import pytest

from preview_reaper.models.activity import ActivitySignal, SignalKind, SignalOutcome
from preview_reaper.models.namespace import NamespacePhase, PreviewNamespace

WINDOW = timedelta(hours=24)


@pytest.fixture
def temp_directory() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


def _git(args: list[str], cwd: Path) -> None:
    subprocess.run(["git", *args], cwd=cwd, capture_output=True, check=True)


@pytest.fixture
def git_repo(temp_directory: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository with a main and a feature branch."""
    repo_path = temp_directory / "upstream"
    repo_path.mkdir()

    _git(["init"], repo_path)
    _git(["config", "user.email", "test@example.com"], repo_path)
    _git(["config", "user.name", "Test User"], repo_path)
    _git(["config", "commit.gpgsign", "false"], repo_path)

    (repo_path / "README.md").write_text("# Test Repository\n")

    _git(["add", "."], repo_path)
    _git(["commit", "-m", "Initial commit"], repo_path)
    _git(["branch", "-M", "main"], repo_path)
    _git(["branch", "feature/login"], repo_path)

    yield repo_path


@pytest.fixture
def git_clone(git_repo: Path, temp_directory: Path) -> Path:
    """Clone git_repo so its branches appear as origin/* remote refs."""
    clone_path = temp_directory / "clone"
    _git(["clone", str(git_repo), str(clone_path)], temp_directory)
    return clone_path


def make_signals(
    outcome: SignalOutcome, window: timedelta = WINDOW
) -> list[ActivitySignal]:
    """One signal per kind, all with the same outcome."""
    return [ActivitySignal(kind=kind, outcome=outcome, window=window) for kind in SignalKind]


def active(name: str) -> PreviewNamespace:
    return PreviewNamespace(name=name, phase=NamespacePhase.ACTIVE)


def fetcher_from(
    signals_by_namespace: dict[str, Sequence[ActivitySignal]],
) -> Callable:
    """Async signal fetcher backed by a dict; a stored exception is raised."""

    async def fetch(namespace: str) -> Sequence[ActivitySignal]:
        result = signals_by_namespace[namespace]
        if isinstance(result, Exception):
            raise result
        return result

    return fetch


@pytest.fixture
def idle_signals() -> list[ActivitySignal]:
    return make_signals(SignalOutcome.NO_ACTIVITY)


@pytest.fixture
def busy_signals() -> list[ActivitySignal]:
    signals = make_signals(SignalOutcome.NO_ACTIVITY)
    signals[0] = ActivitySignal(
        kind=SignalKind.RECENT_WORKSPACE_INSTANCE,
        outcome=SignalOutcome.ACTIVITY,
        window=WINDOW,
    )
    return signals


@pytest.fixture
def unavailable_signals() -> list[ActivitySignal]:
    return make_signals(SignalOutcome.UNAVAILABLE)
