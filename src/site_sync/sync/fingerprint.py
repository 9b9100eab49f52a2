"""Content digests, change classification and state persistence."""

import hashlib
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import aiofiles
from loguru import logger

from site_sync.exceptions import DigestError
from site_sync.models import RemoteObjectState, SyncState
from site_sync.storage.base import StateStore
from site_sync.sync.utils import FileRecord, SyncPlan

CHUNK_SIZE = 8192


class FingerprintStore:
    """
    Decides what changed between the local tree and what was last synced.

    Digests are MD5 over file content. Modification times are never used as a
    change signal: checkouts and clock skew move mtime without touching content.
    """

    algorithm = "md5"

    def __init__(self, state_store: StateStore):
        self.state_store = state_store
        self._state: Optional[SyncState] = None

    @staticmethod
    def digest(data: bytes) -> str:
        """MD5 hex digest of a byte string."""
        return hashlib.md5(data).hexdigest()

    @staticmethod
    async def digest_file(path: Path, relative_path: Optional[str] = None) -> str:
        """
        Compute the MD5 hex digest of a file, reading in chunks.

        Args:
            path: File to read
            relative_path: Key used in error reporting

        Raises:
            DigestError: If the file cannot be read
        """
        md5 = hashlib.md5()
        try:
            async with aiofiles.open(path, "rb") as f:
                while chunk := await f.read(CHUNK_SIZE):
                    md5.update(chunk)
        except OSError as e:
            key = relative_path or str(path)
            logger.error(f"Failed to read {key}: {e}")
            raise DigestError(key, e) from e
        return md5.hexdigest()

    def diff(
        self,
        current_records: Iterable[FileRecord],
        prior_state: Mapping[str, RemoteObjectState],
        delete_removed: bool = True,
    ) -> SyncPlan:
        """
        Classify every local and previously synced path.

        Args:
            current_records: Files found by the scanner
            prior_state: relative_path -> RemoteObjectState from the last run
            delete_removed: Whether removed files are scheduled for remote deletion

        Returns:
            SyncPlan whose to_upload, to_delete and unchanged sets partition
            the union of local and prior paths
        """
        plan = SyncPlan()

        for record in current_records:
            plan.checksums[record.relative_path] = record.digest
            prior = prior_state.get(record.relative_path)
            if prior is None:
                plan.added.add(record.relative_path)
                plan.to_upload.add(record.relative_path)
            elif prior.digest != record.digest:
                plan.to_upload.add(record.relative_path)
            else:
                plan.unchanged.add(record.relative_path)

        for relative_path in prior_state:
            if relative_path in plan.checksums:
                continue
            plan.removed.add(relative_path)
            if delete_removed:
                plan.to_delete.add(relative_path)
            else:
                plan.unchanged.add(relative_path)

        logger.debug(f"Changes found: {plan.total_changes}")
        logger.debug(f"  New: {len(plan.added)}")
        logger.debug(f"  Modified: {len(plan.modified)}")
        logger.debug(f"  Deleted: {len(plan.to_delete)}")
        if plan.removed and not delete_removed:
            logger.debug(f"  Kept (deletion disabled): {len(plan.removed)}")

        return plan

    async def _get_state(self) -> SyncState:
        if self._state is None:
            self._state = await self.state_store.load()
        return self._state

    async def load(self) -> Dict[str, RemoteObjectState]:
        """Previously synced objects keyed by relative path."""
        state = await self._get_state()
        return state.list_all()

    async def load_aggregate(self) -> Optional[str]:
        """Aggregate fingerprint recorded by the last completed run."""
        state = await self._get_state()
        return state.aggregate

    async def save(self, objects: Mapping[str, RemoteObjectState]) -> None:
        """Persist the object map. The stored aggregate is left as it was, so a run
        that failed before fingerprinting still triggers invalidation next time.
        """
        state = await self._get_state()
        state.objects = dict(objects)
        await self.state_store.save(state)

    async def save_aggregate(self, aggregate: str) -> None:
        """Record the aggregate fingerprint of a run whose invalidation went through."""
        state = await self._get_state()
        state.aggregate = aggregate
        await self.state_store.save(state)
