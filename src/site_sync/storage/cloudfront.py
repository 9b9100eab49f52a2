"""CloudFront cache invalidation."""

import asyncio
import uuid
from typing import Any, Optional, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from site_sync.exceptions import ConfigError, InvalidationError

INVALIDATE_ALL_PATHS = ("/*",)


class CloudFrontInvalidator:
    """Issues a single invalidate-everything request for one distribution."""

    def __init__(
        self,
        distribution_id: str,
        client: Any = None,
        profile: Optional[str] = None,
        paths: Sequence[str] = INVALIDATE_ALL_PATHS,
    ):
        self.distribution_id = distribution_id
        self.paths = list(paths)
        if client is None:
            try:
                session = boto3.session.Session(profile_name=profile)
                client = session.client("cloudfront")
            except BotoCoreError as e:
                raise ConfigError(f"Cannot create CloudFront client: {e}") from e
        self.client = client

    async def invalidate_all(self) -> str:
        # CallerReference must be unique per request or CloudFront treats it as a replay
        caller_reference = f"site-sync-{uuid.uuid4().hex}"
        try:
            response = await asyncio.to_thread(
                self.client.create_invalidation,
                DistributionId=self.distribution_id,
                InvalidationBatch={
                    "Paths": {"Quantity": len(self.paths), "Items": self.paths},
                    "CallerReference": caller_reference,
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Invalidation of {self.distribution_id} failed: {e}")
            raise InvalidationError(f"Invalidation of {self.distribution_id} failed: {e}") from e

        request_id = response["Invalidation"]["Id"]
        logger.info(f"Requested invalidation {request_id} on {self.distribution_id}")
        return request_id
