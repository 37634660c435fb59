"""
Unit tests for the BranchLister.

Tests cover:
- Listing remote branches of a real clone
- Errors for missing repositories and remotes
"""

import pytest

from preview_reaper.core.branches import BranchLister
from preview_reaper.core.errors import BranchListError


class TestBranchLister:
    """Tests for BranchLister.list_branches."""

    def test_lists_remote_branches_without_prefix(self, git_clone):
        branches = BranchLister(git_clone).list_branches()

        assert branches == ["feature/login", "main"]

    def test_fetch_picks_up_new_branches(self, git_repo, git_clone):
        import subprocess

        subprocess.run(
            ["git", "branch", "fix/typo"], cwd=git_repo, capture_output=True, check=True
        )

        assert "fix/typo" not in BranchLister(git_clone).list_branches()
        assert "fix/typo" in BranchLister(git_clone, fetch=True).list_branches()

    def test_not_a_repository(self, temp_directory):
        with pytest.raises(BranchListError, match="Not a git repository"):
            BranchLister(temp_directory / "missing").list_branches()

    def test_unknown_remote(self, git_clone):
        with pytest.raises(BranchListError, match="upstream"):
            BranchLister(git_clone, remote="upstream").list_branches()
