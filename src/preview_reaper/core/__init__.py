"""
Core modules for Preview Reaper.

This package contains the core business logic for:
- Mapping branches to preview namespace names
- Evaluating activity signals
- Planning which previews to reclaim
- Cluster, database and repository access
- Running a full reclaim pass
"""

from preview_reaper.core.activity import ActivitySignalEvaluator
from preview_reaper.core.branches import BranchLister
from preview_reaper.core.cluster import ClusterSession
from preview_reaper.core.database import DatabaseProber
from preview_reaper.core.errors import (
    BranchListError,
    ClusterAuthError,
    DeletionError,
    NamespaceListError,
    ProbeError,
    ReaperError,
    SetupError,
)
from preview_reaper.core.job import ReclaimJob
from preview_reaper.core.naming import BranchNameMapper
from preview_reaper.core.planner import ReclaimPlanner

__all__ = [
    "ActivitySignalEvaluator",
    "BranchLister",
    "ClusterSession",
    "DatabaseProber",
    "BranchListError",
    "ClusterAuthError",
    "DeletionError",
    "NamespaceListError",
    "ProbeError",
    "ReaperError",
    "SetupError",
    "ReclaimJob",
    "BranchNameMapper",
    "ReclaimPlanner",
]
