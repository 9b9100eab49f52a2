"""Contracts for the collaborators a sync run talks to."""

from typing import Optional, Protocol

from site_sync.models import SyncState


class ObjectStore(Protocol):
    """Remote object store addressed by key.

    Implementations raise RetryableStoreError for transient failures and
    StoreError for everything else.
    """

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        digest: str,
        cache_control: Optional[str] = None,
    ) -> None: ...

    async def delete(self, key: str) -> None: ...


class StateStore(Protocol):
    """Durable storage for the SyncState document."""

    async def load(self) -> SyncState: ...

    async def save(self, state: SyncState) -> None: ...


class CacheInvalidator(Protocol):
    """Downstream cache that can be told everything it serves is stale."""

    async def invalidate_all(self) -> str: ...
