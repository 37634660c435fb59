"""
Reclaim planning for preview namespaces.

The planner fans out one activity check per active namespace, waits for all
of them, and turns the idle ones into a deletion plan. Each check returns
its own decision; nothing is shared between checks.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import timedelta
from typing import Optional

from preview_reaper.config import ExpectedNamespacePolicy
from preview_reaper.core.activity import ActivitySignalEvaluator
from preview_reaper.core.naming import BranchNameMapper
from preview_reaper.models.activity import ActivitySignal
from preview_reaper.models.namespace import PreviewNamespace
from preview_reaper.models.reclaim import ReclaimDecision, ReclaimPlan, ReclaimVerdict

logger = logging.getLogger(__name__)

SignalFetcher = Callable[[str], Awaitable[Sequence[ActivitySignal]]]


class ReclaimPlanner:
    """
    Decides which preview namespaces to delete.

    Namespaces that are not Active, whose activity check failed, or whose
    check was still running at the deadline are excluded from the plan and
    reported, never treated as idle.
    """

    def __init__(
        self,
        evaluator: Optional[ActivitySignalEvaluator] = None,
        mapper: Optional[BranchNameMapper] = None,
        window: timedelta = timedelta(hours=24),
        policy: ExpectedNamespacePolicy = ExpectedNamespacePolicy.PROTECT_EXPECTED,
        deadline_seconds: Optional[float] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.evaluator = evaluator or ActivitySignalEvaluator()
        self.mapper = mapper or BranchNameMapper()
        self.window = window
        self.policy = policy
        self.deadline_seconds = deadline_seconds
        self.log = log or logger

    async def _classify(
        self, namespace: PreviewNamespace, fetch_signals: SignalFetcher
    ) -> ReclaimDecision:
        self.log.debug(f"Checking namespace {namespace.name}")
        signals = await fetch_signals(namespace.name)
        return self.evaluator.evaluate(namespace.name, signals, self.window)

    def _apply_policy(
        self, decision: ReclaimDecision, expected: frozenset[str]
    ) -> ReclaimDecision:
        if not decision.idle:
            return decision

        if (
            self.policy is ExpectedNamespacePolicy.PROTECT_EXPECTED
            and decision.namespace in expected
        ):
            return decision.model_copy(
                update={
                    "verdict": ReclaimVerdict.KEEP,
                    "reason": f"{decision.reason}; backed by a known branch",
                }
            )

        return decision

    async def _gather(self, tasks: dict[str, asyncio.Task]) -> None:
        """Wait for every task, cancelling the ones still running at the deadline."""
        try:
            _, pending = await asyncio.wait(
                tasks.values(), timeout=self.deadline_seconds
            )
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise

        for task in pending:
            task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def plan(
        self,
        branches: Iterable[str],
        live_namespaces: Iterable[PreviewNamespace],
        fetch_signals: SignalFetcher,
    ) -> ReclaimPlan:
        """
        Compute the deletion plan for one snapshot of branches and namespaces.

        Args:
            branches: Remote branch names known at planning time
            live_namespaces: Namespaces observed in the cluster
            fetch_signals: Coroutine returning the activity signals of a namespace

        Returns:
            ReclaimPlan with the namespaces to delete and the evidence
        """
        expected = self.mapper.expected_namespaces(branches)
        excluded: dict[str, str] = {}
        warnings: list[str] = []
        candidates: dict[str, PreviewNamespace] = {}

        for namespace in live_namespaces:
            if not namespace.is_active:
                excluded[namespace.name] = f"phase is {namespace.phase.value}"
                self.log.info(
                    f"Skipping {namespace.name}: phase is {namespace.phase.value}"
                )
                continue
            candidates[namespace.name] = namespace

        # A name reported in any non-Active phase is never classified.
        for name in excluded:
            candidates.pop(name, None)

        tasks = {
            name: asyncio.create_task(self._classify(namespace, fetch_signals))
            for name, namespace in candidates.items()
        }

        if tasks:
            await self._gather(tasks)

        decisions: list[ReclaimDecision] = []

        for name, task in tasks.items():
            if task.cancelled():
                excluded[name] = "activity check abandoned"
                warnings.append(f"{name}: activity check did not finish in time")
                self.log.warning(f"Activity check for {name} abandoned")
                continue

            error = task.exception()
            if error is not None:
                excluded[name] = f"activity check failed: {error}"
                warnings.append(f"{name}: {error}")
                self.log.warning(f"Activity check for {name} failed: {error}")
                continue

            decision = self._apply_policy(task.result(), expected)
            self.log.info(
                f"{name}: {decision.verdict.value} ({decision.reason})"
            )
            decisions.append(decision)

        to_delete = sorted(
            {d.namespace for d in decisions if d.verdict is ReclaimVerdict.DELETE}
        )

        return ReclaimPlan(
            namespaces=to_delete,
            decisions=sorted(decisions, key=lambda d: d.namespace),
            expected_namespaces=sorted(expected),
            excluded=excluded,
            warnings=warnings,
        )
