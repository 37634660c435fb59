"""
Pydantic models for activity signals.

An activity signal is the outcome of one probe against a preview
environment's database: whether a row newer than the lookback window exists.
"""

from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignalKind(str, Enum):
    """The kinds of activity probed in a preview database."""

    RECENT_WORKSPACE_INSTANCE = "recent_workspace_instance"
    RECENT_USER_SIGNUP = "recent_user_signup"
    RECENT_HEARTBEAT = "recent_heartbeat"


class SignalOutcome(str, Enum):
    """Result of a single activity probe."""

    ACTIVITY = "activity"
    NO_ACTIVITY = "no_activity"
    UNAVAILABLE = "unavailable"


class ActivitySignal(BaseModel):
    """One probe's result for a namespace."""

    model_config = ConfigDict(frozen=True)

    kind: SignalKind = Field(description="Which activity was probed")
    outcome: SignalOutcome = Field(description="What the probe observed")
    window: timedelta = Field(
        default=timedelta(hours=24),
        description="Lookback window the probe was evaluated over",
    )
    detail: Optional[str] = Field(
        default=None,
        description="Free-form context, e.g. why the probe was unavailable",
    )

    @classmethod
    def unavailable(
        cls, kind: SignalKind, window: timedelta, detail: Optional[str] = None
    ) -> "ActivitySignal":
        return cls(
            kind=kind,
            outcome=SignalOutcome.UNAVAILABLE,
            window=window,
            detail=detail,
        )
