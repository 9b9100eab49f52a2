from .content_types import ContentTyper
from .file_scanner import FileScanner
from .fingerprint import FingerprintStore
from .invalidation import InvalidationTrigger
from .sync_service import SyncService
from .syncer import Syncer

__all__ = [
    "ContentTyper",
    "FileScanner",
    "FingerprintStore",
    "InvalidationTrigger",
    "SyncService",
    "Syncer",
]
