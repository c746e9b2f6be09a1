"""Scanner for account-global S3 buckets."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional

from botocore.exceptions import ClientError

from .clients import ClientFactory, CredentialProvider
from .records import GLOBAL_REGION, ScanRecord
from .tags import has_no_tags
from .utils import run_blocking, run_worker_pool

logger = logging.getLogger(__name__)

DEFAULT_GLOBAL_CONCURRENCY = 5
NO_TAG_SET_CODES = frozenset({"nosuchtagset", "404"})


def is_missing_tag_set(exc: ClientError) -> bool:
    """Return ``True`` when *exc* means the bucket simply has no tags."""

    error = exc.response.get("Error", {})
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status == 404 or str(error.get("Code", "")).lower() in NO_TAG_SET_CODES


def normalize_tag_set(response: Optional[Mapping[str, Any]]) -> List[Any]:
    """Return the tag list from a ``get_bucket_tagging`` style response."""

    if not response:
        return []
    tags = response.get("Tags")
    candidates = (
        response.get("TagSet"),
        tags.get("Tag") if isinstance(tags, Mapping) else None,
        tags,
    )
    for candidate in candidates:
        if candidate:
            return list(candidate) if isinstance(candidate, list) else []
    return []


class BucketTagScanner:
    """List every bucket once and check each bucket's tag set.

    Buckets are spread over ``concurrency`` workers sharing a claim cursor. A
    bucket whose tags cannot be read is dropped without affecting the others.
    """

    service = "S3"

    def __init__(
        self,
        client_factory: ClientFactory,
        credentials: Optional[CredentialProvider] = None,
        *,
        concurrency: int = DEFAULT_GLOBAL_CONCURRENCY,
        request_timeout: Optional[float] = None,
        region: str = "us-east-1",
    ) -> None:
        self.client_factory = client_factory
        self.credentials = credentials
        self.concurrency = concurrency
        self.request_timeout = request_timeout
        self.region = region
        self.scanned_buckets: List[str] = []

    async def scan(self) -> List[ScanRecord]:
        if self.credentials is not None and not self.credentials.has_credentials():
            logger.info("Skipping S3 bucket scan: no credentials available")
            return []

        s3 = self.client_factory.client("s3", self.region)
        response = await run_blocking(s3.list_buckets)
        buckets = [b["Name"] for b in response.get("Buckets") or [] if b.get("Name")]
        logger.info("Checking tags on %d buckets", len(buckets))

        records: List[ScanRecord] = []

        async def check(bucket: str) -> None:
            tags = await self._bucket_tags(s3, bucket)
            if tags is not None and has_no_tags({"TagSet": tags}):
                records.append(ScanRecord(service=self.service, id=bucket, region=GLOBAL_REGION))

        cursor = await run_worker_pool(buckets, check, self.concurrency)
        self.scanned_buckets = list(cursor.claimed)
        return records

    async def _bucket_tags(self, s3: Any, bucket: str) -> Optional[List[Any]]:
        """Return the bucket's tags, ``[]`` when unset, ``None`` on failure."""

        try:
            response = await asyncio.wait_for(
                run_blocking(s3.get_bucket_tagging, Bucket=bucket), self.request_timeout
            )
        except ClientError as exc:
            if is_missing_tag_set(exc):
                return []
            logger.debug("Dropping bucket %s: %s", bucket, exc)
            return None
        except asyncio.TimeoutError:
            logger.debug("Dropping bucket %s: tag lookup timed out", bucket)
            return None
        except Exception as exc:
            logger.debug("Dropping bucket %s: %s", bucket, exc)
            return None
        return normalize_tag_set(response)


__all__ = [
    "BucketTagScanner",
    "DEFAULT_GLOBAL_CONCURRENCY",
    "is_missing_tag_set",
    "normalize_tag_set",
]
