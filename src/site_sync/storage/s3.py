"""S3 object store and S3-backed state store."""

import asyncio
import base64
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
)
from loguru import logger
from pydantic import ValidationError

from site_sync.exceptions import ConfigError, RetryableStoreError, StateError, StoreError
from site_sync.models import SyncState, utcnow

RETRYABLE_ERROR_CODES = {
    "InternalError",
    "RequestTimeout",
    "RequestTimeoutException",
    "ServiceUnavailable",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
}


def create_s3_client(
    region: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    profile: Optional[str] = None,
    connect_timeout: float = 10,
    read_timeout: float = 60,
) -> Any:
    """S3 client with botocore's own retries disabled; the Syncer owns retry policy."""
    try:
        session = boto3.session.Session(profile_name=profile, region_name=region)
        return session.client(
            "s3",
            endpoint_url=endpoint_url,
            config=Config(
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"max_attempts": 0},
            ),
        )
    except BotoCoreError as e:
        raise ConfigError(f"Cannot create S3 client: {e}") from e


def content_md5(digest: str) -> str:
    """Base64 Content-MD5 header value for a hex MD5 digest."""
    return base64.b64encode(bytes.fromhex(digest)).decode("ascii")


def translate_error(e: Exception, key: str) -> StoreError:
    """Map a botocore failure onto retryable or fatal store errors."""
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        code = error.get("Code", "")
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0
        message = f"{code or 'ClientError'} for {key}: {error.get('Message', e)}"
        if code in RETRYABLE_ERROR_CODES or status >= 500:
            return RetryableStoreError(message, key=key)
        return StoreError(message, key=key)
    if isinstance(e, (BotoConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return RetryableStoreError(f"Connection failure for {key}: {e}", key=key)
    return StoreError(f"Request failed for {key}: {e}", key=key)


class S3ObjectStore:
    """Uploads and deletes objects in one bucket."""

    def __init__(self, bucket: str, client: Any = None):
        self.bucket = bucket
        self.client = client or create_s3_client()

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        digest: str,
        cache_control: Optional[str] = None,
    ) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
            "ContentMD5": content_md5(digest),
        }
        if cache_control:
            params["CacheControl"] = cache_control

        try:
            await asyncio.to_thread(self.client.put_object, **params)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, key) from e
        logger.debug(f"put s3://{self.bucket}/{key} ({content_type}, {len(data)} bytes)")

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, key) from e
        logger.debug(f"deleted s3://{self.bucket}/{key}")


class S3StateStore:
    """Keeps the SyncState document as a JSON object in the bucket itself."""

    def __init__(self, bucket: str, key: str, client: Any = None):
        self.bucket = bucket
        self.key = key
        self.client = client or create_s3_client()

    async def load(self) -> SyncState:
        try:
            response = await asyncio.to_thread(
                self.client.get_object, Bucket=self.bucket, Key=self.key
            )
            body = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                logger.debug(f"No state at s3://{self.bucket}/{self.key}, starting empty")
                return SyncState()
            logger.error(f"Failed to read state s3://{self.bucket}/{self.key}: {e}")
            raise StateError(f"Failed to read state s3://{self.bucket}/{self.key}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to read state s3://{self.bucket}/{self.key}: {e}")
            raise StateError(f"Failed to read state s3://{self.bucket}/{self.key}: {e}") from e

        try:
            return SyncState.model_validate_json(body)
        except ValidationError as e:
            raise StateError(f"Corrupt state s3://{self.bucket}/{self.key}: {e}") from e

    async def save(self, state: SyncState) -> None:
        state.updated_at = utcnow()
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=self.key,
                Body=state.model_dump_json(indent=2).encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to write state s3://{self.bucket}/{self.key}: {e}")
            raise StateError(f"Failed to write state s3://{self.bucket}/{self.key}: {e}") from e
