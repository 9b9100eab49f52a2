"""Exceptions raised while scanning, syncing and invalidating."""

from typing import Optional


class SiteSyncError(Exception):
    """Base exception for site-sync."""

    pass


class ConfigError(SiteSyncError):
    """Raised when required configuration is missing or invalid."""

    pass


class ScanError(SiteSyncError):
    """Raised when the source tree cannot be enumerated."""

    pass


class DigestError(SiteSyncError):
    """Raised when a file cannot be read while computing its digest."""

    def __init__(self, relative_path: str, cause: BaseException):
        self.relative_path = relative_path
        self.cause = cause
        super().__init__(f"Failed to digest {relative_path}: {cause}")


class SyncError(SiteSyncError):
    """Raised when an upload fails after all retries are exhausted."""

    def __init__(self, relative_path: str, cause: BaseException, attempts: int = 1):
        self.relative_path = relative_path
        self.cause = cause
        self.attempts = attempts
        super().__init__(f"Failed to upload {relative_path} after {attempts} attempt(s): {cause}")


class DeleteWarning(SiteSyncError):
    """A remote delete that failed. Collected and reported, never raised by a run."""

    def __init__(self, relative_path: str, cause: BaseException):
        self.relative_path = relative_path
        self.cause = cause
        super().__init__(f"Failed to delete {relative_path}: {cause}")


class StoreError(SiteSyncError):
    """Raised by an object store backend for a failed request."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class RetryableStoreError(StoreError):
    """Transient object store failure (throttling, timeout, 5xx)."""

    pass


class StateError(SiteSyncError):
    """Raised when persisted sync state cannot be read or written."""

    pass


class InvalidationError(SiteSyncError):
    """Raised when a CDN invalidation request fails."""

    pass
