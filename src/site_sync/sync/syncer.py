"""Apply a SyncPlan to the remote object store."""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import aiofiles
from loguru import logger

from site_sync.exceptions import DeleteWarning, DigestError, RetryableStoreError, SyncError
from site_sync.models import RemoteObjectState
from site_sync.storage.base import ObjectStore
from site_sync.sync.fingerprint import FingerprintStore
from site_sync.sync.utils import FileRecord, SyncPlan, SyncResult
from site_sync.utils import remote_key


class Syncer:
    """Uploads changed files, deletes removed ones and records what is live.

    The only writer of RemoteObjectState. State is saved once per batch, after
    every upload and delete has finished or failed, and is saved on failure
    and cancellation as well so completed uploads are not redone.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        fingerprint_store: FingerprintStore,
        prefix: str = "",
        delete_removed: bool = True,
        concurrency: int = 8,
        max_attempts: int = 5,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        cache_control: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.object_store = object_store
        self.fingerprint_store = fingerprint_store
        self.prefix = prefix
        self.delete_removed = delete_removed
        self.concurrency = concurrency
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.cache_control = cache_control
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based): base * 2^(attempt-1), capped."""
        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)

    async def sync(self, plan: SyncPlan, file_records: Iterable[FileRecord]) -> SyncResult:
        """
        Upload plan.to_upload, then delete plan.to_delete if deletion is enabled.

        Returns:
            SyncResult with counts and the final object state

        Raises:
            SyncError: If an upload fails after all retries
            DigestError: If a file cannot be read or changed since it was scanned
        """
        records = {r.relative_path: r for r in file_records}
        missing = plan.to_upload - records.keys()
        if missing:
            raise ValueError(f"No file record for planned uploads: {sorted(missing)}")

        state = await self.fingerprint_store.load()
        try:
            uploaded = await self._upload_all(sorted(plan.to_upload), records, state)
            if self.delete_removed:
                deleted, warnings = await self._delete_all(sorted(plan.to_delete), state)
            else:
                deleted, warnings = 0, []
        except BaseException:
            await self._save_partial(state)
            raise

        if plan.total_changes:
            await self.fingerprint_store.save(state)
        else:
            logger.debug("No changes to apply, state left untouched")

        result = SyncResult(
            uploaded=uploaded,
            deleted=deleted,
            unchanged=len(plan.unchanged),
            final_state=state,
            warnings=warnings,
            plan=plan,
        )
        logger.info(
            f"Uploaded {result.uploaded}, deleted {result.deleted}, "
            f"unchanged {result.unchanged}, warnings {len(result.warnings)}"
        )
        return result

    async def _save_partial(self, state: Dict[str, RemoteObjectState]) -> None:
        try:
            await self.fingerprint_store.save(state)
            logger.info(f"Saved partial state ({len(state)} objects)")
        except Exception as e:
            logger.error(f"Failed to save partial state: {e}")

    async def _upload_all(
        self,
        paths: List[str],
        records: Dict[str, FileRecord],
        state: Dict[str, RemoteObjectState],
    ) -> int:
        if not paths:
            return 0

        semaphore = asyncio.Semaphore(self.concurrency)
        failed = asyncio.Event()

        async def upload(path: str) -> bool:
            async with semaphore:
                # no new uploads once one has failed; in-flight ones finish
                if failed.is_set():
                    return False
                try:
                    await self.upload_file(records[path])
                except Exception:
                    failed.set()
                    raise
                record = records[path]
                state[path] = RemoteObjectState(
                    relative_path=path,
                    digest=record.digest,
                    content_type=record.content_type,
                )
                return True

        results = await asyncio.gather(*(upload(p) for p in paths), return_exceptions=True)

        errors = [r for r in results if isinstance(r, BaseException)]
        uploaded = sum(1 for r in results if r is True)
        if errors:
            logger.error(f"Upload batch aborted after {uploaded} of {len(paths)} uploads")
            raise errors[0]
        return uploaded

    async def upload_file(self, record: FileRecord) -> None:
        """Upload one file with retries, verifying its bytes still match the scanned digest."""
        try:
            async with aiofiles.open(record.absolute_path, "rb") as f:
                data = await f.read()
        except OSError as e:
            logger.error(f"Failed to read {record.relative_path}: {e}")
            raise DigestError(record.relative_path, e) from e

        if FingerprintStore.digest(data) != record.digest:
            raise DigestError(
                record.relative_path, RuntimeError("file changed after it was scanned")
            )

        key = remote_key(self.prefix, record.relative_path)
        logger.debug(f"Uploading: {record.relative_path} -> {key}")
        attempts, error = await self._call_with_retry(
            record.relative_path,
            "upload",
            lambda: self.object_store.put(
                key,
                data,
                content_type=record.content_type,
                digest=record.digest,
                cache_control=self.cache_control,
            ),
        )
        if error is not None:
            logger.error(f"Failed to upload {record.relative_path}: {error}")
            raise SyncError(record.relative_path, error, attempts=attempts) from error

    async def _delete_all(
        self, paths: List[str], state: Dict[str, RemoteObjectState]
    ) -> Tuple[int, List[DeleteWarning]]:
        if not paths:
            return 0, []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def delete(path: str) -> Optional[DeleteWarning]:
            async with semaphore:
                key = remote_key(self.prefix, path)
                logger.debug(f"Deleting: {path} -> {key}")
                _, error = await self._call_with_retry(
                    path, "delete", lambda: self.object_store.delete(key)
                )
            if error is not None:
                # the path stays in state so the next run tries again
                warning = DeleteWarning(path, error)
                logger.warning(str(warning))
                return warning
            state.pop(path, None)
            return None

        outcomes = await asyncio.gather(*(delete(p) for p in paths))
        warnings = [w for w in outcomes if w is not None]
        return len(paths) - len(warnings), warnings

    async def _call_with_retry(
        self, path: str, action: str, call: Callable[[], Awaitable[None]]
    ) -> Tuple[int, Optional[Exception]]:
        """Run call, retrying RetryableStoreError with backoff.

        Returns (attempts made, final error or None).
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                await call()
                return attempt, None
            except RetryableStoreError as e:
                if attempt == self.max_attempts:
                    return attempt, e
                delay = self.backoff_delay(attempt)
                logger.warning(
                    f"{action} of {path} failed (attempt {attempt}/{self.max_attempts}): {e}; "
                    f"retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
            except Exception as e:
                return attempt, e
        return self.max_attempts, None  # pragma: no cover
