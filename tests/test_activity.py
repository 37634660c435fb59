"""
Unit tests for the ActivitySignalEvaluator.

Tests cover:
- Idle only when every signal reports no activity
- Empty evidence never implies idle
- Unavailable probes under both policies
- Signals evaluated over a shorter lookback
"""

from datetime import timedelta

import pytest

from conftest import WINDOW, make_signals
from preview_reaper.core.activity import ActivitySignalEvaluator
from preview_reaper.models.activity import ActivitySignal, SignalKind, SignalOutcome
from preview_reaper.models.reclaim import ReclaimVerdict


class TestIsIdle:
    """Tests for ActivitySignalEvaluator.is_idle."""

    @pytest.fixture
    def evaluator(self):
        return ActivitySignalEvaluator()

    def test_empty_signals_are_not_idle(self, evaluator):
        assert evaluator.is_idle([], WINDOW) is False

    def test_all_no_activity_is_idle(self, evaluator, idle_signals):
        assert evaluator.is_idle(idle_signals, WINDOW) is True

    def test_single_no_activity_signal_is_idle(self, evaluator, idle_signals):
        assert evaluator.is_idle(idle_signals[:1], WINDOW) is True

    @pytest.mark.parametrize("active_kind", list(SignalKind))
    def test_any_activity_keeps(self, evaluator, idle_signals, active_kind):
        signals = [
            s.model_copy(update={"outcome": SignalOutcome.ACTIVITY})
            if s.kind is active_kind
            else s
            for s in idle_signals
        ]

        assert evaluator.is_idle(signals, WINDOW) is False

    def test_unavailable_keeps_by_default(self, evaluator, unavailable_signals):
        assert evaluator.is_idle(unavailable_signals, WINDOW) is False

    def test_unavailable_is_idle_when_configured(self, unavailable_signals):
        evaluator = ActivitySignalEvaluator(unavailable_is_idle=True)

        assert evaluator.is_idle(unavailable_signals, WINDOW) is True

    def test_activity_wins_over_unavailable_even_when_configured(self):
        evaluator = ActivitySignalEvaluator(unavailable_is_idle=True)
        signals = [
            ActivitySignal.unavailable(SignalKind.RECENT_USER_SIGNUP, WINDOW),
            ActivitySignal(
                kind=SignalKind.RECENT_HEARTBEAT,
                outcome=SignalOutcome.ACTIVITY,
                window=WINDOW,
            ),
        ]

        assert evaluator.is_idle(signals, WINDOW) is False

    def test_shorter_lookback_cannot_prove_idle(self, evaluator):
        signals = make_signals(SignalOutcome.NO_ACTIVITY, window=timedelta(hours=1))

        assert evaluator.is_idle(signals, WINDOW) is False

    def test_longer_lookback_proves_idle(self, evaluator):
        signals = make_signals(SignalOutcome.NO_ACTIVITY, window=timedelta(hours=48))

        assert evaluator.is_idle(signals, WINDOW) is True


class TestEvaluate:
    """Tests for ActivitySignalEvaluator.evaluate."""

    def test_idle_namespace_gets_delete_verdict(self, idle_signals):
        decision = ActivitySignalEvaluator().evaluate("staging-x", idle_signals, WINDOW)

        assert decision.verdict is ReclaimVerdict.DELETE
        assert decision.idle is True
        assert decision.signals == idle_signals
        assert "no activity" in decision.reason

    def test_busy_namespace_gets_keep_verdict(self, busy_signals):
        decision = ActivitySignalEvaluator().evaluate("staging-x", busy_signals, WINDOW)

        assert decision.verdict is ReclaimVerdict.KEEP
        assert decision.idle is False
        assert "recent_workspace_instance" in decision.reason

    def test_unavailable_reason_is_reported(self, unavailable_signals):
        decision = ActivitySignalEvaluator().evaluate(
            "staging-x", unavailable_signals, WINDOW
        )

        assert decision.verdict is ReclaimVerdict.KEEP
        assert "unavailable" in decision.reason

    def test_empty_evidence_reason(self):
        decision = ActivitySignalEvaluator().evaluate("staging-x", [], WINDOW)

        assert decision.verdict is ReclaimVerdict.KEEP
        assert decision.reason == "no activity signals collected"
