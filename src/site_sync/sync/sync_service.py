"""Service for syncing a source directory with a remote object store."""

from pathlib import Path
from typing import Optional

from loguru import logger

from site_sync.storage.base import CacheInvalidator
from site_sync.sync.file_scanner import FileScanner
from site_sync.sync.fingerprint import FingerprintStore
from site_sync.sync.invalidation import InvalidationTrigger
from site_sync.sync.syncer import Syncer
from site_sync.sync.utils import RunPhase, SyncPlan, SyncRun


class SyncService:
    """Runs Scan -> Diff -> Sync -> Fingerprint for one source directory.

    Each phase completes before the next starts. A run that fails keeps
    whatever the Syncer durably applied; the next run diffs against that.
    """

    def __init__(
        self,
        scanner: FileScanner,
        fingerprint_store: FingerprintStore,
        syncer: Syncer,
        trigger: Optional[InvalidationTrigger] = None,
        invalidator: Optional[CacheInvalidator] = None,
    ):
        self.scanner = scanner
        self.fingerprint_store = fingerprint_store
        self.syncer = syncer
        self.trigger = trigger or InvalidationTrigger()
        self.invalidator = invalidator
        self.last_run: Optional[SyncRun] = None

    async def plan(self, directory: Path) -> SyncPlan:
        """Scan and diff only. Nothing remote is touched."""
        records = await self.scanner.scan(directory)
        prior = await self.fingerprint_store.load()
        return self.fingerprint_store.diff(records, prior, delete_removed=self.syncer.delete_removed)

    async def run(self, directory: Path) -> SyncRun:
        """Sync all files in directory with the remote store."""
        run = SyncRun()
        self.last_run = run
        try:
            await self._run(directory, run)
        except BaseException as e:
            logger.error(f"Sync failed during {run.phase.value}: {e}")
            run.error = e
            run.phase = RunPhase.FAILED
            raise
        return run

    async def _run(self, directory: Path, run: SyncRun) -> None:
        self._enter(run, RunPhase.SCANNING)
        records = await self.scanner.scan(directory)

        self._enter(run, RunPhase.DIFFING)
        prior = await self.fingerprint_store.load()
        previous_aggregate = await self.fingerprint_store.load_aggregate()
        run.plan = self.fingerprint_store.diff(
            records, prior, delete_removed=self.syncer.delete_removed
        )
        logger.info(f"Found {run.plan.total_changes} changes in {directory}")

        self._enter(run, RunPhase.SYNCING)
        run.result = await self.syncer.sync(run.plan, records)

        self._enter(run, RunPhase.FINGERPRINTING)
        run.decision = self.trigger.check_and_signal(run.result.final_state, previous_aggregate)
        if run.decision.changed:
            if self.invalidator is not None:
                run.invalidation_id = await self.invalidator.invalidate_all()
            else:
                logger.debug("No cache invalidator configured, skipping invalidation")
            # recorded only once the invalidation went through, so a failure repeats it next run
            await self.fingerprint_store.save_aggregate(run.decision.new_aggregate)

        self._enter(run, RunPhase.DONE)

    @staticmethod
    def _enter(run: SyncRun, phase: RunPhase) -> None:
        logger.debug(f"Sync phase: {run.phase.value} -> {phase.value}")
        run.phase = phase
