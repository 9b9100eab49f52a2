"""Common test fixtures."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from site_sync.config import SyncConfig
from site_sync.models import SyncState
from site_sync.sync import (
    ContentTyper,
    FileScanner,
    FingerprintStore,
    InvalidationTrigger,
    SyncService,
    Syncer,
)


class FakeObjectStore:
    """In-memory object store that can be told to fail specific keys."""

    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, str, str, Optional[str]]] = {}
        self.put_calls: List[str] = []
        self.delete_calls: List[str] = []
        # key -> errors raised by successive calls, popped front first
        self.put_failures: Dict[str, List[Exception]] = {}
        self.delete_failures: Dict[str, List[Exception]] = {}

    async def put(self, key, data, content_type, digest, cache_control=None):
        self.put_calls.append(key)
        failures = self.put_failures.get(key)
        if failures:
            raise failures.pop(0)
        self.objects[key] = (data, content_type, digest, cache_control)

    async def delete(self, key):
        self.delete_calls.append(key)
        failures = self.delete_failures.get(key)
        if failures:
            raise failures.pop(0)
        self.objects.pop(key, None)


class MemoryStateStore:
    """StateStore that keeps a deep copy of the last saved document."""

    def __init__(self, state: Optional[SyncState] = None):
        self.state = state or SyncState()
        self.save_count = 0

    async def load(self) -> SyncState:
        return self.state.model_copy(deep=True)

    async def save(self, state: SyncState) -> None:
        self.save_count += 1
        self.state = state.model_copy(deep=True)


class FakeInvalidator:
    def __init__(self, error: Optional[Exception] = None):
        self.calls = 0
        self.error = error

    async def invalidate_all(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return f"I{self.calls:04d}"


async def create_test_file(path: Path, content: str = "test content") -> None:
    """Create a test file with given content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "site"
    path.mkdir()
    return path


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    home = tmp_path / "site-sync-home"
    monkeypatch.setenv("SITE_SYNC_HOME", str(home))
    return home


@pytest.fixture
def test_config(config_home: Path, source_dir: Path) -> SyncConfig:
    return SyncConfig(home=config_home, source_dir=source_dir, bucket="test-bucket")


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def invalidator() -> FakeInvalidator:
    return FakeInvalidator()


@pytest.fixture
def sleeps() -> List[float]:
    """Delays the syncer asked to sleep for."""
    return []


@pytest.fixture
def fingerprint_store(state_store) -> FingerprintStore:
    return FingerprintStore(state_store)


@pytest.fixture
def file_scanner() -> FileScanner:
    return FileScanner(content_typer=ContentTyper())


@pytest.fixture
def syncer(object_store, fingerprint_store, sleeps) -> Syncer:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return Syncer(
        object_store,
        fingerprint_store,
        concurrency=4,
        max_attempts=3,
        backoff_base=0.5,
        backoff_max=1.5,
        sleep=fake_sleep,
    )


@pytest.fixture
def sync_service(file_scanner, fingerprint_store, syncer, invalidator) -> SyncService:
    return SyncService(
        scanner=file_scanner,
        fingerprint_store=fingerprint_store,
        syncer=syncer,
        trigger=InvalidationTrigger(),
        invalidator=invalidator,
    )
