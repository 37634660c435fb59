"""
Idleness evaluation for preview namespaces.

A namespace is idle only when every configured activity signal proves the
absence of activity over the whole staleness window. Anything short of that
proof keeps the namespace.
"""

from collections.abc import Sequence
from datetime import timedelta

from preview_reaper.models.activity import ActivitySignal, SignalOutcome
from preview_reaper.models.reclaim import ReclaimDecision, ReclaimVerdict


class ActivitySignalEvaluator:
    """Reduces a namespace's activity signals to an idle/active verdict."""

    def __init__(self, unavailable_is_idle: bool = False):
        self.unavailable_is_idle = unavailable_is_idle

    def _proves_idle(self, signal: ActivitySignal, window: timedelta) -> bool:
        if signal.window < window:
            return False

        if signal.outcome is SignalOutcome.NO_ACTIVITY:
            return True

        if signal.outcome is SignalOutcome.UNAVAILABLE:
            return self.unavailable_is_idle

        return False

    def is_idle(self, signals: Sequence[ActivitySignal], window: timedelta) -> bool:
        """
        Decide whether a namespace is idle.

        Args:
            signals: Every probe result collected for the namespace
            window: Staleness window the verdict must cover

        Returns:
            True only for a non-empty sequence in which every signal reports
            no activity over at least ``window``
        """
        if not signals:
            return False

        return all(self._proves_idle(signal, window) for signal in signals)

    def explain(self, signals: Sequence[ActivitySignal], window: timedelta) -> str:
        """Short human-readable reason for the verdict."""
        if not signals:
            return "no activity signals collected"

        active = [s.kind.value for s in signals if s.outcome is SignalOutcome.ACTIVITY]
        if active:
            return "activity observed: " + ", ".join(active)

        short = [s.kind.value for s in signals if s.window < window]
        if short:
            return "lookback shorter than window: " + ", ".join(short)

        unavailable = [s.kind.value for s in signals if s.outcome is SignalOutcome.UNAVAILABLE]
        if unavailable and not self.unavailable_is_idle:
            return "probe unavailable: " + ", ".join(unavailable)

        return f"no activity within {window}"

    def evaluate(
        self,
        namespace: str,
        signals: Sequence[ActivitySignal],
        window: timedelta,
    ) -> ReclaimDecision:
        """Classify a namespace, keeping the signals as evidence."""
        idle = self.is_idle(signals, window)

        return ReclaimDecision(
            namespace=namespace,
            verdict=ReclaimVerdict.DELETE if idle else ReclaimVerdict.KEEP,
            idle=idle,
            signals=list(signals),
            reason=self.explain(signals, window),
        )
