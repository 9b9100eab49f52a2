"""Configuration management for site-sync."""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from site_sync.exceptions import ConfigError

STATE_DIR_NAME = "state"
LOG_FILE_NAME = "site-sync.log"
WATCH_STATUS_FILE_NAME = "watch-status.json"


class SyncConfig(BaseSettings):
    """Configuration for publishing one source directory to one bucket."""

    # Default to ~/.site-sync but allow override with env var
    home: Path = Field(
        default_factory=lambda: Path.home() / ".site-sync",
        description="Base path for site-sync state and logs",
    )

    source_dir: Path = Field(default=Path("dist"), description="Local build directory to publish")

    # Remote object store
    bucket: Optional[str] = Field(default=None, description="Target bucket name")
    prefix: str = Field(default="", description="Key prefix prepended to every object key")
    region: Optional[str] = None
    endpoint_url: Optional[str] = Field(
        default=None, description="Custom endpoint for S3-compatible stores"
    )
    profile: Optional[str] = Field(default=None, description="AWS profile name")
    cache_control: Optional[str] = Field(
        default=None, description="Cache-Control header applied to uploaded objects"
    )

    # CDN
    distribution_id: Optional[str] = Field(
        default=None, description="CloudFront distribution to invalidate on change"
    )

    # State persistence
    state_file: Optional[Path] = Field(
        default=None, description="Local JSON state file (default: <home>/state/<bucket>.json)"
    )
    state_key: Optional[str] = Field(
        default=None, description="Keep state in the bucket under this key instead of a local file"
    )

    # Sync policy
    delete_removed: bool = Field(
        default=True, description="Delete remote objects whose local file was removed"
    )
    concurrency: int = Field(default=8, description="Maximum concurrent uploads")
    max_attempts: int = Field(default=5, description="Upload attempts before a file fails the run")
    backoff_base: float = Field(default=0.5, description="Initial retry delay in seconds")
    backoff_max: float = Field(default=8.0, description="Maximum retry delay in seconds")

    exclude: List[str] = Field(default_factory=list, description="Extra ignore patterns")
    content_types: Dict[str, str] = Field(
        default_factory=dict, description="Extra extension -> MIME type mappings"
    )

    # Watch mode
    sync_delay: int = Field(default=500, description="Watch debounce in milliseconds")

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SITE_SYNC_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def state_path(self) -> Path:
        """Get the local state file path."""
        if self.state_file:
            return self.state_file
        name = self.bucket or "default"
        return self.home / STATE_DIR_NAME / f"{name}.json"

    @property
    def exclude_patterns(self) -> List[str]:
        """Configured excludes, plus the local state file when it lives inside the source tree."""
        patterns = list(self.exclude)
        if self.state_key:
            return patterns
        try:
            state_rel = self.state_path.resolve().relative_to(self.source_dir.resolve())
        except ValueError:
            return patterns
        # the state store writes through a sibling temp file
        patterns.append("/" + state_rel.as_posix())
        patterns.append("/" + state_rel.with_suffix(".tmp").as_posix())
        return patterns

    @property
    def log_path(self) -> Path:
        return self.home / LOG_FILE_NAME

    @property
    def watch_status_path(self) -> Path:
        return self.home / WATCH_STATUS_FILE_NAME

    def require_bucket(self) -> str:
        """Return the configured bucket or fail with a usable message."""
        if not self.bucket:
            raise ConfigError("No bucket configured. Pass --bucket or set SITE_SYNC_BUCKET.")
        return self.bucket

    @field_validator("home")
    @classmethod
    def ensure_path_exists(cls, v: Path) -> Path:
        """Ensure home path exists."""
        if not v.exists():
            v.mkdir(parents=True)
        return v

    @field_validator("prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        """Strip leading slashes and make a non-empty prefix end with exactly one slash."""
        v = v.strip().lstrip("/")
        if not v:
            return ""
        return v.rstrip("/") + "/"

    @field_validator("concurrency", "max_attempts")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v
