"""
Pydantic models for reclaim decisions and run reports.

This module provides data models for:
- Per-namespace keep/delete verdicts with their evidence
- The deletion plan produced by one planning pass
- The report of a full reclaim run, phase by phase
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from preview_reaper.models.activity import ActivitySignal


class ReclaimVerdict(str, Enum):
    """Verdict for a single namespace."""

    KEEP = "keep"
    DELETE = "delete"


class ReclaimDecision(BaseModel):
    """Verdict for one namespace plus the signals that produced it."""

    namespace: str
    verdict: ReclaimVerdict
    idle: bool = False
    signals: list[ActivitySignal] = Field(default_factory=list)
    reason: str = ""


class ReclaimPlan(BaseModel):
    """The set of namespaces selected for deletion in one planning pass."""

    namespaces: list[str] = Field(
        default_factory=list,
        description="Sorted, de-duplicated namespace names to delete",
    )
    decisions: list[ReclaimDecision] = Field(default_factory=list)
    expected_namespaces: list[str] = Field(
        default_factory=list,
        description="Namespace names backed by a known branch",
    )
    excluded: dict[str, str] = Field(
        default_factory=dict,
        description="Namespaces left out of classification, with the reason",
    )
    warnings: list[str] = Field(default_factory=list)

    def decision_for(self, namespace: str) -> Optional[ReclaimDecision]:
        for decision in self.decisions:
            if decision.namespace == namespace:
                return decision
        return None


class PhaseStatus(str, Enum):
    """Outcome of one phase of a reclaim run."""

    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class PhaseResult(BaseModel):
    """What a phase attempted and how it ended."""

    name: str
    status: PhaseStatus
    message: str = ""


class DeletionResult(BaseModel):
    """Result of tearing down one namespace."""

    namespace: str
    deleted: bool
    error: Optional[str] = None


class ReclaimReport(BaseModel):
    """Report generated after a reclaim run."""

    timestamp: datetime
    dry_run: bool
    staleness_hours: int
    succeeded: bool = True
    phases: list[PhaseResult] = []
    branches_found: int = 0
    namespaces_found: int = 0
    plan: Optional[ReclaimPlan] = None
    deletions: list[DeletionResult] = []

    @property
    def deleted_namespaces(self) -> list[str]:
        return [d.namespace for d in self.deletions if d.deleted]

    @property
    def failed_deletions(self) -> list[DeletionResult]:
        return [d for d in self.deletions if d.error is not None]

    def phase(self, name: str) -> Optional[PhaseResult]:
        for result in self.phases:
            if result.name == name:
                return result
        return None
