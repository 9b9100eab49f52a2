"""Test applying sync plans to the object store."""

import asyncio
from pathlib import Path

import pytest

from conftest import FakeObjectStore, create_test_file
from site_sync.exceptions import (
    DeleteWarning,
    DigestError,
    RetryableStoreError,
    StoreError,
    SyncError,
)
from site_sync.models import RemoteObjectState, SyncState
from site_sync.sync import FileScanner, FingerprintStore, Syncer


async def no_sleep(delay: float) -> None:
    pass


async def plan_for(scanner: FileScanner, fingerprints: FingerprintStore, directory: Path, **kw):
    records = await scanner.scan(directory)
    plan = fingerprints.diff(records, await fingerprints.load(), **kw)
    return plan, records


@pytest.mark.asyncio
async def test_uploads_new_files(syncer, file_scanner, fingerprint_store, object_store, state_store, source_dir):
    await create_test_file(source_dir / "index.html", "<h1>hi</h1>")
    await create_test_file(source_dir / "css/site.css", "body {}")
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    result = await syncer.sync(plan, records)

    assert result.uploaded == 2
    assert result.deleted == 0
    assert result.unchanged == 0
    assert set(result.final_state) == {"index.html", "css/site.css"}
    data, content_type, digest, cache_control = object_store.objects["css/site.css"]
    assert data == b"body {}"
    assert content_type == "text/css"
    assert digest == FingerprintStore.digest(b"body {}")
    assert cache_control is None
    assert set(state_store.state.objects) == {"index.html", "css/site.css"}
    assert state_store.state.objects["index.html"].content_type == "text/html"


@pytest.mark.asyncio
async def test_prefix_and_cache_control(file_scanner, fingerprint_store, object_store, source_dir):
    await create_test_file(source_dir / "index.html", "home")
    syncer = Syncer(
        object_store,
        fingerprint_store,
        prefix="www/",
        cache_control="max-age=300",
        sleep=no_sleep,
    )
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    result = await syncer.sync(plan, records)

    assert list(object_store.objects) == ["www/index.html"]
    assert object_store.objects["www/index.html"][3] == "max-age=300"
    # state stays keyed by relative path
    assert list(result.final_state) == ["index.html"]


@pytest.mark.asyncio
async def test_retries_transient_failures(
    syncer, file_scanner, fingerprint_store, object_store, source_dir, sleeps
):
    await create_test_file(source_dir / "index.html", "home")
    object_store.put_failures["index.html"] = [
        RetryableStoreError("SlowDown"),
        RetryableStoreError("SlowDown"),
    ]
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    result = await syncer.sync(plan, records)

    assert result.uploaded == 1
    assert object_store.put_calls == ["index.html"] * 3
    assert sleeps == [0.5, 1.0]


@pytest.mark.asyncio
async def test_exhausted_retries_fail_run_and_keep_progress(
    file_scanner, fingerprint_store, object_store, state_store, source_dir
):
    for name in ("a.html", "b.html", "c.html"):
        await create_test_file(source_dir / name, name)
    object_store.put_failures["b.html"] = [RetryableStoreError("timeout")] * 3
    delays = []

    async def record_sleep(delay):
        delays.append(delay)

    syncer = Syncer(
        object_store,
        fingerprint_store,
        concurrency=1,
        max_attempts=3,
        backoff_base=1.0,
        backoff_max=1.5,
        sleep=record_sleep,
    )
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    with pytest.raises(SyncError) as exc_info:
        await syncer.sync(plan, records)

    error = exc_info.value
    assert error.relative_path == "b.html"
    assert error.attempts == 3
    assert isinstance(error.cause, RetryableStoreError)
    assert delays == [1.0, 1.5]
    # a.html was durably uploaded and recorded, c.html never started
    assert set(state_store.state.objects) == {"a.html"}
    assert "c.html" not in object_store.put_calls


@pytest.mark.asyncio
async def test_non_retryable_error_fails_immediately(
    syncer, file_scanner, fingerprint_store, object_store, source_dir, sleeps
):
    await create_test_file(source_dir / "index.html", "home")
    object_store.put_failures["index.html"] = [StoreError("AccessDenied")]
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    with pytest.raises(SyncError) as exc_info:
        await syncer.sync(plan, records)

    assert exc_info.value.attempts == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_deletes_removed_files(syncer, file_scanner, fingerprint_store, object_store, state_store, source_dir):
    await create_test_file(source_dir / "keep.html", "keep")
    await create_test_file(source_dir / "old.html", "old")
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)
    await syncer.sync(plan, records)

    (source_dir / "old.html").unlink()
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)
    result = await syncer.sync(plan, records)

    assert plan.to_delete == {"old.html"}
    assert result.deleted == 1
    assert result.uploaded == 0
    assert result.unchanged == 1
    assert object_store.delete_calls == ["old.html"]
    assert "old.html" not in result.final_state
    assert set(state_store.state.objects) == {"keep.html"}


@pytest.mark.asyncio
async def test_delete_failure_is_a_warning(
    syncer, file_scanner, fingerprint_store, object_store, state_store, source_dir
):
    state_store.state = SyncState(
        objects={
            "old.html": RemoteObjectState(
                relative_path="old.html", digest="d", content_type="text/html"
            )
        }
    )
    await create_test_file(source_dir / "new.html", "new")
    object_store.delete_failures["old.html"] = [StoreError("AccessDenied")]
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    result = await syncer.sync(plan, records)

    assert result.uploaded == 1
    assert result.deleted == 0
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert isinstance(warning, DeleteWarning)
    assert warning.relative_path == "old.html"
    # still tracked so the next run retries the delete
    assert "old.html" in state_store.state.objects


@pytest.mark.asyncio
async def test_deletion_disabled_leaves_remote_untouched(
    file_scanner, fingerprint_store, object_store, state_store, source_dir
):
    syncer = Syncer(object_store, fingerprint_store, delete_removed=False, sleep=no_sleep)
    await create_test_file(source_dir / "old.html", "old")
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)
    await syncer.sync(plan, records)

    (source_dir / "old.html").unlink()
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir, delete_removed=False)
    result = await syncer.sync(plan, records)

    assert result.deleted == 0
    assert object_store.delete_calls == []
    assert "old.html" in result.final_state
    assert "old.html" in object_store.objects


@pytest.mark.asyncio
async def test_file_changed_after_scan(syncer, file_scanner, fingerprint_store, object_store, source_dir):
    await create_test_file(source_dir / "index.html", "v1")
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)
    await create_test_file(source_dir / "index.html", "v2")

    with pytest.raises(DigestError):
        await syncer.sync(plan, records)
    assert object_store.put_calls == []


@pytest.mark.asyncio
async def test_missing_record_for_planned_upload(syncer, file_scanner, fingerprint_store, source_dir):
    await create_test_file(source_dir / "index.html", "home")
    plan, _ = await plan_for(file_scanner, fingerprint_store, source_dir)

    with pytest.raises(ValueError):
        await syncer.sync(plan, [])


def test_backoff_delay_is_capped(syncer):
    assert [syncer.backoff_delay(n) for n in range(1, 5)] == [0.5, 1.0, 1.5, 1.5]


class SlowObjectStore(FakeObjectStore):
    """Tracks how many puts are in flight at once."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.peak = 0

    async def put(self, key, data, content_type, digest, cache_control=None):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            await super().put(key, data, content_type, digest, cache_control)
        finally:
            self.in_flight -= 1


class GatedObjectStore(FakeObjectStore):
    """Completes puts for `fast` keys at once; every other put waits on the gate."""

    def __init__(self, fast):
        super().__init__()
        self.fast = set(fast)
        self.waiting = set()
        self.gate = asyncio.Event()

    async def put(self, key, data, content_type, digest, cache_control=None):
        if key not in self.fast:
            self.waiting.add(key)
            await self.gate.wait()
        await super().put(key, data, content_type, digest, cache_control)


async def wait_until(condition, timeout: float = 5.0) -> None:
    async def poll():
        while not condition():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


@pytest.mark.asyncio
async def test_uploads_never_exceed_concurrency(file_scanner, fingerprint_store, source_dir):
    for i in range(12):
        await create_test_file(source_dir / f"p{i:02d}.html", f"page {i}")
    store = SlowObjectStore()
    syncer = Syncer(store, fingerprint_store, concurrency=3, sleep=no_sleep)
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    result = await syncer.sync(plan, records)

    assert result.uploaded == 12
    assert 1 <= store.peak <= 3


@pytest.mark.asyncio
async def test_cancellation_keeps_completed_uploads(
    file_scanner, fingerprint_store, state_store, source_dir
):
    for name in ("a.html", "b.html", "c.html"):
        await create_test_file(source_dir / name, name)
    store = GatedObjectStore(fast={"a.html"})
    syncer = Syncer(store, fingerprint_store, concurrency=4, sleep=no_sleep)
    plan, records = await plan_for(file_scanner, fingerprint_store, source_dir)

    task = asyncio.create_task(syncer.sync(plan, records))
    await wait_until(lambda: "a.html" in store.objects and store.waiting == {"b.html", "c.html"})
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    # exactly the finished upload is recorded, the cancelled ones are not
    assert set(state_store.state.objects) == {"a.html"}
    assert set(store.objects) == {"a.html"}
