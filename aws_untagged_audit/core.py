"""Core orchestration of an untagged resource scan run."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .clients import ClientFactory, CredentialProvider, default_client_config
from .config import ScanConfig
from .dispatcher import RegionDispatcher
from .export import ExportTarget, S3Exporter
from .global_scan import BucketTagScanner
from .records import ScanRecord, ScanSummary, UnitOutcome
from .regions import RegionResolver
from .services import SCANNER_REGISTRY, ScanContext, ScannerRegistry

logger = logging.getLogger(__name__)

Exporter = Callable[[Sequence[ScanRecord]], Awaitable[object]]


@dataclass
class ScanResult:
    """Aggregated records and bookkeeping from a full scan run."""

    regions: Tuple[str, ...]
    records: List[ScanRecord]
    outcomes: List[UnitOutcome] = field(default_factory=list)
    export_key: Optional[str] = None

    @property
    def summary(self) -> ScanSummary:
        return ScanSummary(scanned_regions=len(self.regions), untagged_count=len(self.records))

    @property
    def failures(self) -> List[UnitOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


def aggregate(records: Iterable[ScanRecord]) -> List[ScanRecord]:
    """Return *records* ordered by ``(region, service, id)``; duplicates are kept."""

    return sorted(records, key=ScanRecord.sort_key)


async def run_scan(
    config: ScanConfig,
    *,
    credentials: Optional[CredentialProvider] = None,
    client_factory: Optional[ClientFactory] = None,
    registry: Optional[ScannerRegistry] = None,
    resolver: Optional[RegionResolver] = None,
    global_scanner: Optional[BucketTagScanner] = None,
    exporter: Optional[Exporter] = None,
) -> ScanResult:
    """Scan every selected region and the global buckets, then export.

    Only a failure to resolve regions propagates. Unit failures, a failing
    bucket listing and export errors are logged and leave fewer records in the
    result.
    """

    if credentials is None:
        credentials = CredentialProvider.from_env(profile=config.profile)
    if client_factory is None:
        client_factory = ClientFactory(
            credentials.session(),
            config=default_client_config(read_timeout=config.page_timeout),
        )
    units = (registry or SCANNER_REGISTRY).select(config.services)
    if resolver is None:
        resolver = RegionResolver(
            client_factory, control_region=config.control_region, override=config.regions
        )

    regions = await resolver.list_regions()
    logger.info(
        "Scanning %d regions with %d scanners (max %d regions at once)",
        len(regions),
        len(units),
        config.max_region_concurrency,
    )

    def context_for(region: str) -> ScanContext:
        return ScanContext(
            region,
            client_factory.for_region(region),
            home_region=config.home_region,
            page_size=config.page_size,
            max_pages=config.max_pages,
            page_timeout=config.page_timeout,
        )

    dispatcher = RegionDispatcher(
        units,
        context_for,
        max_concurrency=config.max_region_concurrency,
        unit_timeout=config.unit_timeout,
    )

    if global_scanner is None and config.scan_global:
        global_scanner = BucketTagScanner(
            client_factory,
            credentials,
            concurrency=config.global_concurrency,
            request_timeout=config.page_timeout,
            region=config.home_region,
        )

    outcomes, global_records = await asyncio.gather(
        dispatcher.run(regions),
        _scan_global(global_scanner if config.scan_global else None),
    )

    collected: List[ScanRecord] = [r for outcome in outcomes for r in outcome.records]
    collected.extend(global_records)
    result = ScanResult(regions=tuple(regions), records=aggregate(collected), outcomes=outcomes)

    if exporter is None and config.report_bucket:
        exporter = S3Exporter(
            client_factory,
            ExportTarget(
                bucket=config.report_bucket,
                region=config.export_region,
                prefix=config.report_prefix,
            ),
            credentials,
        ).export
    if exporter is not None:
        try:
            key = await exporter(result.records)
        except Exception:
            logger.exception("Report export failed")
        else:
            result.export_key = key if isinstance(key, str) else None
    else:
        logger.info("No report bucket configured; skipping export")

    logger.info(
        "Scan finished: %d regions, %d untagged resources, %d failed scanner runs",
        len(result.regions),
        len(result.records),
        len(result.failures),
    )
    return result


async def _scan_global(scanner: Optional[BucketTagScanner]) -> List[ScanRecord]:
    if scanner is None:
        return []
    try:
        return await scanner.scan()
    except Exception as exc:
        logger.warning("Global bucket scan failed: %s", exc)
        return []


def scan(config: ScanConfig, **kwargs) -> ScanResult:
    """Synchronous wrapper around :func:`run_scan`."""

    return asyncio.run(run_scan(config, **kwargs))


def print_records(records: Iterable[ScanRecord]) -> None:
    """Pretty-print records to stdout."""

    records = list(records)
    if not records:
        print("No untagged resources detected.")
        return

    header = f"{'Region':<16} {'Service':<16} Resource"
    print(header)
    print("-" * len(header))
    for record in records:
        print(f"{record.region:<16} {record.service:<16} {record.id}")


def group_counts(records: Iterable[ScanRecord]) -> Mapping[str, int]:
    """Return the number of records per service, ordered by service key."""

    counts: dict[str, int] = {}
    for record in records:
        counts[record.service] = counts.get(record.service, 0) + 1
    return dict(sorted(counts.items()))


__all__ = [
    "Exporter",
    "ScanResult",
    "aggregate",
    "group_counts",
    "print_records",
    "run_scan",
    "scan",
]
