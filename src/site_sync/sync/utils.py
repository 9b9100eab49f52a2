"""Types for file sync."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from site_sync.exceptions import DeleteWarning
from site_sync.models import RemoteObjectState

INVALIDATE_ALL_PATHS: Tuple[str, ...] = ("/*",)


@dataclass(frozen=True)
class FileRecord:
    """One local file under the source root, digested at scan time."""

    relative_path: str
    absolute_path: Path
    digest: str
    content_type: str
    size: int = 0


@dataclass
class SyncPlan:
    """Diff between local files and the prior remote state.

    Attributes:
        to_upload: Files that are new or whose digest differs
        to_delete: Files present remotely but gone locally (deletion enabled only)
        unchanged: Files with a matching digest, plus removed files kept when deletion is off
        added: Subset of to_upload with no prior remote state
        removed: Prior remote paths with no local file
        checksums: Current digests for files on disk
    """

    to_upload: Set[str] = field(default_factory=set)
    to_delete: Set[str] = field(default_factory=set)
    unchanged: Set[str] = field(default_factory=set)
    added: Set[str] = field(default_factory=set)
    removed: Set[str] = field(default_factory=set)
    checksums: Dict[str, str] = field(default_factory=dict)

    @property
    def modified(self) -> Set[str]:
        return self.to_upload - self.added

    @property
    def total_changes(self) -> int:
        """Total number of remote objects that need attention."""
        return len(self.to_upload) + len(self.to_delete)


@dataclass
class SyncResult:
    """Outcome of applying a SyncPlan."""

    uploaded: int = 0
    deleted: int = 0
    unchanged: int = 0
    final_state: Dict[str, RemoteObjectState] = field(default_factory=dict)
    warnings: List[DeleteWarning] = field(default_factory=list)
    plan: Optional[SyncPlan] = None


@dataclass(frozen=True)
class InvalidationDecision:
    """Whether the downstream cache must drop everything it serves."""

    changed: bool
    new_aggregate: str
    previous_aggregate: Optional[str] = None
    paths: Tuple[str, ...] = INVALIDATE_ALL_PATHS


class RunPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DIFFING = "diffing"
    SYNCING = "syncing"
    FINGERPRINTING = "fingerprinting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncRun:
    """Everything one run produced, including how far it got."""

    phase: RunPhase = RunPhase.IDLE
    plan: Optional[SyncPlan] = None
    result: Optional[SyncResult] = None
    decision: Optional[InvalidationDecision] = None
    invalidation_id: Optional[str] = None
    error: Optional[BaseException] = None
