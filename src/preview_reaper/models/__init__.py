"""
Pydantic models for Preview Reaper.

This package contains data models for:
- Preview namespaces and their lifecycle phase
- Activity signals probed from a preview database
- Reclaim decisions, plans and run reports
"""

from preview_reaper.models.activity import (
    ActivitySignal,
    SignalKind,
    SignalOutcome,
)
from preview_reaper.models.namespace import (
    NamespacePair,
    NamespacePhase,
    PreviewNamespace,
)
from preview_reaper.models.reclaim import (
    DeletionResult,
    PhaseResult,
    PhaseStatus,
    ReclaimDecision,
    ReclaimPlan,
    ReclaimReport,
    ReclaimVerdict,
)

__all__ = [
    "ActivitySignal",
    "SignalKind",
    "SignalOutcome",
    "NamespacePair",
    "NamespacePhase",
    "PreviewNamespace",
    "DeletionResult",
    "PhaseResult",
    "PhaseStatus",
    "ReclaimDecision",
    "ReclaimPlan",
    "ReclaimReport",
    "ReclaimVerdict",
]
