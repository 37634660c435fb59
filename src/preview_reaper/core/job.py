"""
Reclaim job for preview environments.

Runs one full reclaim pass in phases:
- prep: authenticate against the cluster
- fetching branches: list remote branches
- fetching previews: list live preview namespaces
- checking activity: probe and plan
- deleting previews: tear down planned namespaces (skipped on dry run)
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Optional

from preview_reaper.config import Config
from preview_reaper.core.activity import ActivitySignalEvaluator
from preview_reaper.core.branches import BranchLister
from preview_reaper.core.cluster import ClusterSession
from preview_reaper.core.database import DatabaseProber
from preview_reaper.core.errors import SetupError
from preview_reaper.core.naming import BranchNameMapper
from preview_reaper.core.planner import ReclaimPlanner
from preview_reaper.models.reclaim import (
    DeletionResult,
    PhaseResult,
    PhaseStatus,
    ReclaimReport,
)

logger = logging.getLogger(__name__)

PHASE_PREP = "prep"
PHASE_BRANCHES = "fetching branches"
PHASE_PREVIEWS = "fetching previews"
PHASE_ACTIVITY = "checking activity"
PHASE_DELETE = "deleting previews"

PHASES = [PHASE_PREP, PHASE_BRANCHES, PHASE_PREVIEWS, PHASE_ACTIVITY, PHASE_DELETE]


class ReclaimJob:
    """
    Orchestrates a reclaim run against the configured cluster.

    Collaborators default to the real cluster, database and repository
    clients built from the configuration and can be replaced individually.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        session: Optional[ClusterSession] = None,
        branch_lister: Optional[BranchLister] = None,
        prober: Optional[DatabaseProber] = None,
        planner: Optional[ReclaimPlanner] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.config = config or Config()
        self.log = log or logger
        reclaim = self.config.reclaim

        self.session = session or ClusterSession(self.config.cluster)
        self.branch_lister = branch_lister or BranchLister(
            repo_path=Path(self.config.repository.path),
            remote=self.config.repository.remote,
            fetch=self.config.repository.fetch,
        )
        self.prober = prober or DatabaseProber(
            self.session, self.config.database, reclaim.window
        )
        self.planner = planner or ReclaimPlanner(
            evaluator=ActivitySignalEvaluator(reclaim.unavailable_is_idle),
            mapper=BranchNameMapper(prefix=self.config.cluster.namespace_prefix),
            window=reclaim.window,
            policy=reclaim.policy,
            deadline_seconds=reclaim.deadline_seconds,
            log=self.log,
        )

    def _record(
        self,
        report: ReclaimReport,
        phase: str,
        status: PhaseStatus,
        message: str = "",
    ) -> None:
        report.phases.append(PhaseResult(name=phase, status=status, message=message))
        if status is PhaseStatus.FAILED:
            self.log.error(f"[{phase}] failed: {message}")
        else:
            self.log.info(f"[{phase}] {status.value}{': ' + message if message else ''}")

    def _skip_after(self, report: ReclaimReport, failed_phase: str) -> None:
        for phase in PHASES[PHASES.index(failed_phase) + 1:]:
            self._record(report, phase, PhaseStatus.SKIPPED, "earlier phase failed")

    async def _delete_one(self, namespace: str) -> DeletionResult:
        try:
            started = await self.session.delete_preview_async(namespace)
        except Exception as e:
            self.log.error(f"Failed to delete {namespace}: {e}")
            return DeletionResult(namespace=namespace, deleted=False, error=str(e))

        return DeletionResult(namespace=namespace, deleted=started)

    async def delete_all(self, namespaces: list[str]) -> list[DeletionResult]:
        """Delete namespaces concurrently; one failure never stops the others."""
        results = await asyncio.gather(*(self._delete_one(ns) for ns in namespaces))
        return list(results)

    async def run_async(self, dry_run: Optional[bool] = None) -> ReclaimReport:
        """
        Run one reclaim pass.

        Args:
            dry_run: Override the configured dry-run setting

        Returns:
            ReclaimReport; ``succeeded`` is False only when a setup phase failed
        """
        if dry_run is None:
            dry_run = self.config.reclaim.dry_run

        report = ReclaimReport(
            timestamp=datetime.now(),
            dry_run=dry_run,
            staleness_hours=self.config.reclaim.staleness_hours,
        )

        phase = PHASE_PREP
        try:
            await asyncio.to_thread(self.session.authenticate)
            self._record(report, phase, PhaseStatus.DONE)

            phase = PHASE_BRANCHES
            branches = await asyncio.to_thread(self.branch_lister.list_branches)
            report.branches_found = len(branches)
            self._record(report, phase, PhaseStatus.DONE, f"{len(branches)} branches")

            phase = PHASE_PREVIEWS
            namespaces = await asyncio.to_thread(self.session.list_preview_namespaces)
            report.namespaces_found = len(namespaces)
            for namespace in namespaces:
                self.log.debug(f"Found preview {namespace.name} ({namespace.phase.value})")
            self._record(report, phase, PhaseStatus.DONE, f"{len(namespaces)} previews")
        except SetupError as e:
            report.succeeded = False
            self._record(report, phase, PhaseStatus.FAILED, str(e))
            self._skip_after(report, phase)
            return report

        plan = await self.planner.plan(branches, namespaces, self.prober.fetch_signals)
        report.plan = plan
        self._record(
            report,
            PHASE_ACTIVITY,
            PhaseStatus.DONE,
            f"{len(plan.namespaces)} to delete, {len(plan.excluded)} excluded",
        )
        for warning in plan.warnings:
            self.log.warning(f"[{PHASE_ACTIVITY}] {warning}")

        if dry_run:
            self._record(report, PHASE_DELETE, PhaseStatus.SKIPPED, "dry run")
            return report

        report.deletions = await self.delete_all(plan.namespaces)
        failed = len(report.failed_deletions)
        self._record(
            report,
            PHASE_DELETE,
            PhaseStatus.DONE,
            f"{len(report.deleted_namespaces)} deleted, {failed} failed",
        )
        return report

    def run(self, dry_run: Optional[bool] = None) -> ReclaimReport:
        """
        Run one reclaim pass on a fresh event loop.

        Worker threads still blocked in an abandoned check are not waited
        for, so the deadline bounds the run; the database read timeout
        bounds how long those threads linger.
        """
        loop = asyncio.new_event_loop()
        executor = ThreadPoolExecutor(thread_name_prefix="preview-reaper")
        loop.set_default_executor(executor)

        try:
            return loop.run_until_complete(self.run_async(dry_run))
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                executor.shutdown(wait=False, cancel_futures=True)
                loop.close()
