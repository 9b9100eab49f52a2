"""utility functions for commands"""

from typing import Any, Dict

from pydantic import ValidationError

from site_sync.config import SyncConfig
from site_sync.exceptions import ConfigError
from site_sync.storage import (
    CloudFrontInvalidator,
    JsonFileStateStore,
    S3ObjectStore,
    S3StateStore,
)
from site_sync.storage.s3 import create_s3_client
from site_sync.sync import (
    ContentTyper,
    FileScanner,
    FingerprintStore,
    InvalidationTrigger,
    SyncService,
    Syncer,
)


def build_config(**overrides: Any) -> SyncConfig:
    """Config from env/.env with CLI options that were actually given taking precedence."""
    given: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    try:
        return SyncConfig(**given)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def get_sync_service(config: SyncConfig) -> SyncService:
    """Get sync service instance with all dependencies."""
    bucket = config.require_bucket()
    client = create_s3_client(
        region=config.region,
        endpoint_url=config.endpoint_url,
        profile=config.profile,
    )

    if config.state_key:
        state_store = S3StateStore(bucket, config.state_key, client=client)
    else:
        state_store = JsonFileStateStore(config.state_path)

    fingerprint_store = FingerprintStore(state_store)
    scanner = FileScanner(
        content_typer=ContentTyper(config.content_types),
        exclude=config.exclude_patterns,
    )
    syncer = Syncer(
        S3ObjectStore(bucket, client=client),
        fingerprint_store,
        prefix=config.prefix,
        delete_removed=config.delete_removed,
        concurrency=config.concurrency,
        max_attempts=config.max_attempts,
        backoff_base=config.backoff_base,
        backoff_max=config.backoff_max,
        cache_control=config.cache_control,
    )

    invalidator = None
    if config.distribution_id:
        invalidator = CloudFrontInvalidator(config.distribution_id, profile=config.profile)

    return SyncService(
        scanner=scanner,
        fingerprint_store=fingerprint_store,
        syncer=syncer,
        trigger=InvalidationTrigger(),
        invalidator=invalidator,
    )
