"""Persisted sync state."""

from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, Field

STATE_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RemoteObjectState(BaseModel):
    """What was last uploaded for one relative path."""

    relative_path: str
    digest: str
    content_type: str
    last_synced_at: datetime = Field(default_factory=utcnow)


class SyncState(BaseModel):
    """The document a StateStore persists between runs.

    `objects` is the single source of truth for what is live remotely.
    `aggregate` is the fingerprint of the last run whose invalidation
    decision was fully acted on.
    """

    version: int = STATE_VERSION
    objects: Dict[str, RemoteObjectState] = Field(default_factory=dict)
    aggregate: Optional[str] = None
    updated_at: Optional[datetime] = None

    def get(self, relative_path: str) -> Optional[RemoteObjectState]:
        return self.objects.get(relative_path)

    def put(self, record: RemoteObjectState) -> None:
        self.objects[record.relative_path] = record

    def delete(self, relative_path: str) -> None:
        self.objects.pop(relative_path, None)

    def list_all(self) -> Dict[str, RemoteObjectState]:
        return dict(self.objects)
