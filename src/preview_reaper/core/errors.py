"""Exceptions raised while reclaiming preview environments."""


class ReaperError(Exception):
    """Base exception for preview-reaper operations."""


class SetupError(ReaperError):
    """Raised when the run cannot start; nothing is deleted."""


class ClusterAuthError(SetupError):
    """Raised when cluster credentials cannot be obtained or loaded."""


class NamespaceListError(SetupError):
    """Raised when the live preview namespaces cannot be listed."""


class BranchListError(SetupError):
    """Raised when the repository's remote branches cannot be listed."""


class ProbeError(ReaperError):
    """Raised when a namespace's database cannot be queried.

    Distinct from an unavailable probe: a database pod that is not running
    is reported as a signal outcome, never as this exception.
    """

    def __init__(self, namespace: str, message: str):
        super().__init__(f"{namespace}: {message}")
        self.namespace = namespace


class DeletionError(ReaperError):
    """Raised when a preview namespace cannot be torn down."""

    def __init__(self, namespace: str, message: str):
        super().__init__(f"{namespace}: {message}")
        self.namespace = namespace
