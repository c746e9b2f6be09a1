"""End-to-end tests for scan orchestration and aggregation."""

from __future__ import annotations

import asyncio
from typing import Any, List
from unittest.mock import MagicMock

import pytest

from aws_untagged_audit.clients import ClientFactory
from aws_untagged_audit.config import ScanConfig
from aws_untagged_audit.core import aggregate, group_counts, print_records, run_scan
from aws_untagged_audit.export import ExportTarget, S3Exporter
from aws_untagged_audit.global_scan import BucketTagScanner
from aws_untagged_audit.records import GLOBAL_REGION, ScanRecord
from aws_untagged_audit.regions import RegionResolutionError
from aws_untagged_audit.services import ScanContext, ScannerRegistry


def _registry_with_x() -> ScannerRegistry:
    registry = ScannerRegistry()
    ids = {"r1": "i1", "r2": "i2"}

    @registry.register("X")
    async def scan_x(ctx: ScanContext) -> List[ScanRecord]:
        return ctx.untagged("X", [{"InstanceId": ids[ctx.region]}], ("InstanceId",))

    return registry


def test_aggregate_orders_by_region_service_and_id() -> None:
    records = [
        ScanRecord("svc", "b", "r2"),
        ScanRecord("svc", "a", "r1"),
        ScanRecord("svc", "c", "r1"),
    ]

    assert aggregate(records) == [
        ScanRecord("svc", "a", "r1"),
        ScanRecord("svc", "c", "r1"),
        ScanRecord("svc", "b", "r2"),
    ]


def test_aggregate_keeps_duplicates() -> None:
    record = ScanRecord("svc", "a", "r1")

    assert aggregate([record, ScanRecord("svc", "a", "r1")]) == [record, record]


def test_end_to_end_scan_exports_the_sorted_report(fake_session, static_credentials) -> None:
    s3 = MagicMock()
    session = fake_session({"s3": s3})
    factory = ClientFactory(session)
    exporter = S3Exporter(
        factory, ExportTarget(bucket="reports", region="eu-west-1", prefix="scan"),
        static_credentials(True),
    )
    config = ScanConfig(regions=("r1", "r2"), services=("X",), scan_global=False)

    result = asyncio.run(
        run_scan(
            config,
            credentials=static_credentials(True),
            client_factory=factory,
            registry=_registry_with_x(),
            exporter=exporter.export,
        )
    )

    assert result.summary.to_dict() == {"scannedRegions": 2, "untaggedCount": 2}
    s3.put_object.assert_called_once()
    kwargs = s3.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "reports"
    assert kwargs["Body"].decode("utf-8") == "region,service,id\nr1,X,i1\nr2,X,i2\n"
    assert kwargs["Key"].startswith("scan/scan-") and kwargs["Key"].endswith(".csv")
    assert result.export_key == kwargs["Key"]


def test_export_failures_do_not_change_the_summary(static_credentials) -> None:
    async def failing_exporter(records: Any) -> None:
        raise RuntimeError("bucket gone")

    config = ScanConfig(regions=("r1", "r2"), services=("X",), scan_global=False)
    result = asyncio.run(
        run_scan(
            config,
            credentials=static_credentials(True),
            client_factory=ClientFactory(MagicMock()),
            registry=_registry_with_x(),
            exporter=failing_exporter,
        )
    )

    assert result.summary.to_dict() == {"scannedRegions": 2, "untaggedCount": 2}
    assert result.export_key is None


def test_failing_scanners_still_produce_a_summary(static_credentials) -> None:
    registry = ScannerRegistry()

    @registry.register("BROKEN")
    async def broken(ctx: ScanContext) -> List[ScanRecord]:
        raise ConnectionError("unreachable")

    config = ScanConfig(regions=("a", "b", "c"), scan_global=False)
    result = asyncio.run(
        run_scan(
            config,
            credentials=static_credentials(True),
            client_factory=ClientFactory(MagicMock()),
            registry=registry,
        )
    )

    assert result.summary.to_dict() == {"scannedRegions": 3, "untaggedCount": 0}
    assert len(result.failures) == 3


def test_global_records_are_merged_and_sorted(fake_session, static_credentials) -> None:
    s3 = MagicMock()
    s3.list_buckets.return_value = {"Buckets": [{"Name": "logs"}]}
    s3.get_bucket_tagging.return_value = {"TagSet": []}
    factory = ClientFactory(fake_session({"s3": s3}))
    config = ScanConfig(regions=("r1", "r2"), services=("X",))

    result = asyncio.run(
        run_scan(
            config,
            credentials=static_credentials(True),
            client_factory=factory,
            registry=_registry_with_x(),
            global_scanner=BucketTagScanner(factory, static_credentials(True)),
        )
    )

    assert result.records == [
        ScanRecord("S3", "logs", GLOBAL_REGION),
        ScanRecord("X", "i1", "r1"),
        ScanRecord("X", "i2", "r2"),
    ]
    assert result.summary.untagged_count == 3


def test_global_listing_failure_is_isolated(static_credentials) -> None:
    scanner = MagicMock(spec=BucketTagScanner)

    async def fail() -> List[ScanRecord]:
        raise RuntimeError("ListBuckets denied")

    scanner.scan.side_effect = fail
    config = ScanConfig(regions=("r1",), services=("X",))
    registry = ScannerRegistry()

    @registry.register("X")
    async def scan_x(ctx: ScanContext) -> List[ScanRecord]:
        return [ScanRecord("X", "i1")]

    result = asyncio.run(
        run_scan(
            config,
            credentials=static_credentials(True),
            client_factory=ClientFactory(MagicMock()),
            registry=registry,
            global_scanner=scanner,
        )
    )

    assert result.records == [ScanRecord("X", "i1", "r1")]


def test_region_resolution_failure_aborts_the_run(fake_session, static_credentials) -> None:
    ec2 = MagicMock()
    ec2.describe_regions.return_value = {"Regions": []}
    config = ScanConfig(scan_global=False)

    with pytest.raises(RegionResolutionError):
        asyncio.run(
            run_scan(
                config,
                credentials=static_credentials(True),
                client_factory=ClientFactory(fake_session({"ec2": ec2})),
                registry=_registry_with_x(),
            )
        )


def test_unknown_scanner_keys_are_rejected(static_credentials) -> None:
    config = ScanConfig(regions=("r1",), services=("NOPE",), scan_global=False)

    with pytest.raises(ValueError, match="Unknown scanner"):
        asyncio.run(
            run_scan(
                config,
                credentials=static_credentials(True),
                client_factory=ClientFactory(MagicMock()),
                registry=_registry_with_x(),
            )
        )


def test_print_records_and_group_counts(capsys) -> None:
    records = [ScanRecord("EIP", "eipalloc-1", "r1"), ScanRecord("EC2_INSTANCE", "i-1", "r1")]

    print_records(records)
    print_records([])
    out = capsys.readouterr().out

    assert "eipalloc-1" in out
    assert "No untagged resources detected." in out
    assert list(group_counts(records).items()) == [("EC2_INSTANCE", 1), ("EIP", 1)]
