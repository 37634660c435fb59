"""Remote branch listing for the repository that previews are built from."""

import logging
from pathlib import Path
from typing import Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from preview_reaper.core.errors import BranchListError

logger = logging.getLogger(__name__)


class BranchLister:
    """Lists the branches of one remote of a local clone."""

    def __init__(
        self,
        repo_path: Optional[Path] = None,
        remote: str = "origin",
        fetch: bool = False,
    ):
        self.repo_path = repo_path or Path.cwd()
        self.remote = remote
        self.fetch = fetch

    def _open_repo(self) -> Repo:
        try:
            return Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise BranchListError(f"Not a git repository: {self.repo_path}") from e

    def list_branches(self) -> list[str]:
        """
        List remote branch names without the remote prefix.

        Returns:
            Sorted branch names, e.g. ``["feature/foo", "main"]``

        Raises:
            BranchListError: If the repository or remote cannot be read.
        """
        repo = self._open_repo()

        try:
            remote = repo.remote(self.remote)
        except ValueError as e:
            raise BranchListError(f"No remote named {self.remote}") from e

        if self.fetch:
            logger.info(f"Fetching {self.remote} with prune")
            try:
                remote.fetch(prune=True)
            except GitCommandError as e:
                raise BranchListError(f"git fetch {self.remote} failed: {e}") from e

        branches = {ref.remote_head for ref in remote.refs if ref.remote_head != "HEAD"}
        logger.debug(f"Found {len(branches)} branches on {self.remote}")
        return sorted(branches)
