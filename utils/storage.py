"""
Object storage sink backed by S3.

Write-only: every archive run overwrites the same fixed keys, so nothing is
ever read back. boto3 is synchronous; uploads run in a worker thread so that
concurrent recipient pipelines keep making progress while one is uploading.

Usage:
    from utils.storage import ObjectStore

    store = ObjectStore(bucket="phish-reports")
    await store.put("groups/knowbe4_groups.json", body)
"""

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.errors import StoreError

logger = logging.getLogger(__name__)

CAMPAIGNS_KEY = "campaigns/knowbe4_campaigns.json"
GROUPS_KEY = "groups/knowbe4_groups.json"
SECURITY_TESTS_KEY = "campaigns/pst/knowbe4_security_tests.json"
RECIPIENTS_KEY_PREFIX = "recipients/knowbe4_recipients_"


def recipients_key(pst_id: int) -> str:
    """Object key holding the recipients of one security test."""
    return f"{RECIPIENTS_KEY_PREFIX}{pst_id}.json"


class ObjectStore:
    """S3 bucket writer with retries on dropped connections."""

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        """Initialize the store.

        Args:
            bucket: Destination bucket name
            region: AWS region, defaults to the boto3 environment
            client: Preconfigured S3 client, created with boto3 when omitted
        """
        self.bucket = bucket
        self.client = client or boto3.client("s3", region_name=region)

    @retry(
        retry=retry_if_exception_type((EndpointConnectionError, ConnectionClosedError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def _upload(self, key: str, body: bytes) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType="application/x-ndjson",
        )

    async def put(self, key: str, body: bytes) -> None:
        """Write ``body`` to ``key``, replacing any existing object.

        Args:
            key: Object key
            body: Object contents

        Raises:
            StoreError: If the upload fails (after retries for connection errors)
        """
        try:
            await asyncio.to_thread(self._upload, key, body)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(
                f"Error saving data to {self.bucket}/{key} ... {e}",
                bucket=self.bucket,
                key=key,
            ) from e

        logger.info(
            "Saved object",
            extra={"bucket": self.bucket, "key": key, "size": len(body)},
        )
