"""Scanner units for Amazon RDS."""
from __future__ import annotations

from typing import List

from ..records import ScanRecord
from . import ScanContext, aws_pager, register_scanner


@register_scanner("RDS_INSTANCE")
async def scan_rds_instances(ctx: ScanContext) -> List[ScanRecord]:
    rds = ctx.client("rds")
    instances = await ctx.paginate(aws_pager(rds, "describe_db_instances", "DBInstances"))
    return ctx.untagged(
        "RDS_INSTANCE", instances, ("DBInstanceIdentifier", "DbiResourceId")
    )


@register_scanner("RDS_CLUSTER")
async def scan_rds_clusters(ctx: ScanContext) -> List[ScanRecord]:
    """Report Aurora and Multi-AZ DB clusters without tags."""

    rds = ctx.client("rds")
    clusters = await ctx.paginate(aws_pager(rds, "describe_db_clusters", "DBClusters"))
    return ctx.untagged(
        "RDS_CLUSTER", clusters, ("DBClusterIdentifier", "DbClusterResourceId")
    )


__all__ = ["scan_rds_clusters", "scan_rds_instances"]
