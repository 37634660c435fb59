"""Pydantic models for preview namespaces."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NamespacePhase(str, Enum):
    """Lifecycle phase of a cluster namespace."""

    ACTIVE = "Active"
    TERMINATING = "Terminating"
    UNKNOWN = "Unknown"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "NamespacePhase":
        """
        Map the phase string reported by the cluster to a NamespacePhase.

        Any value the cluster may report that is not a known phase, including
        a missing one, maps to UNKNOWN.
        """
        if value is None:
            return cls.UNKNOWN

        for phase in cls:
            if phase.value == value.strip():
                return phase

        return cls.UNKNOWN


class PreviewNamespace(BaseModel):
    """A live preview namespace observed in the cluster."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Namespace name, e.g. staging-my-branch")
    phase: NamespacePhase = Field(
        default=NamespacePhase.UNKNOWN,
        description="Lifecycle phase reported by the cluster",
    )

    @property
    def is_active(self) -> bool:
        return self.phase is NamespacePhase.ACTIVE


class NamespacePair(BaseModel):
    """The two namespace names that may back a preview for one branch."""

    model_config = ConfigDict(frozen=True)

    legacy_name: str = Field(description="Name under the slug-based naming scheme")
    current_name: str = Field(description="Name under the normalized naming scheme")

    def as_set(self) -> frozenset[str]:
        return frozenset((self.legacy_name, self.current_name))
