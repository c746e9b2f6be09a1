"""Tests for the account-global S3 bucket scanner."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from botocore.exceptions import ClientError

from aws_untagged_audit.clients import ClientFactory
from aws_untagged_audit.global_scan import (
    BucketTagScanner,
    is_missing_tag_set,
    normalize_tag_set,
)
from aws_untagged_audit.records import GLOBAL_REGION, ScanRecord


def _client_error(code: str, status: int = 400) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "GetBucketTagging",
    )


class FakeS3:
    def __init__(self, tagging: Dict[str, Any]) -> None:
        self.tagging = tagging
        self.requested = []

    def list_buckets(self) -> Dict[str, Any]:
        return {"Buckets": [{"Name": name} for name in self.tagging]}

    def get_bucket_tagging(self, Bucket: str) -> Dict[str, Any]:
        self.requested.append(Bucket)
        outcome = self.tagging[Bucket]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_missing_tag_configuration_counts_as_untagged(fake_session, static_credentials) -> None:
    s3 = FakeS3(
        {
            "tagged": {"TagSet": [{"Key": "owner", "Value": "data"}]},
            "no-tag-set": _client_error("NoSuchTagSet", 404),
            "not-found": _client_error("NotFound", 404),
            "empty": {"TagSet": []},
            "denied": _client_error("AccessDenied", 403),
            "broken": RuntimeError("connection reset"),
        }
    )
    scanner = BucketTagScanner(
        ClientFactory(fake_session({"s3": s3})), static_credentials(True), concurrency=2
    )

    records = asyncio.run(scanner.scan())

    assert sorted(records, key=ScanRecord.sort_key) == [
        ScanRecord("S3", "empty", GLOBAL_REGION),
        ScanRecord("S3", "no-tag-set", GLOBAL_REGION),
        ScanRecord("S3", "not-found", GLOBAL_REGION),
    ]
    assert sorted(s3.requested) == sorted(s3.tagging)
    assert len(s3.requested) == len(set(s3.requested))
    assert sorted(scanner.scanned_buckets) == sorted(s3.tagging)


def test_scanner_is_skipped_without_credentials(fake_session, static_credentials) -> None:
    session = fake_session({})
    scanner = BucketTagScanner(ClientFactory(session), static_credentials(False))

    assert asyncio.run(scanner.scan()) == []
    assert session.created == []


def test_slow_tag_lookups_drop_only_that_bucket(fake_session, static_credentials) -> None:
    class SlowS3(FakeS3):
        async def get_bucket_tagging(self, Bucket: str) -> Dict[str, Any]:
            if Bucket == "slow":
                await asyncio.sleep(10)
            return {"TagSet": []}

    s3 = SlowS3({"slow": None, "fast": None})
    scanner = BucketTagScanner(
        ClientFactory(fake_session({"s3": s3})),
        static_credentials(True),
        request_timeout=0.05,
    )

    assert asyncio.run(scanner.scan()) == [ScanRecord("S3", "fast", GLOBAL_REGION)]


def test_is_missing_tag_set() -> None:
    assert is_missing_tag_set(_client_error("NoSuchTagSet"))
    assert is_missing_tag_set(_client_error("Whatever", 404))
    assert not is_missing_tag_set(_client_error("AccessDenied", 403))


def test_normalize_tag_set_handles_response_shapes() -> None:
    tags = [{"Key": "a", "Value": "b"}]

    assert normalize_tag_set({"TagSet": tags}) == tags
    assert normalize_tag_set({"Tags": {"Tag": tags}}) == tags
    assert normalize_tag_set({"Tags": tags}) == tags
    assert normalize_tag_set({"Tags": {"Tag": {"Key": "a"}}}) == []
    assert normalize_tag_set(None) == []
    assert normalize_tag_set({}) == []
