"""Scanner unit for Amazon EKS clusters."""
from __future__ import annotations

from typing import Any, Dict, List

from ..records import ScanRecord
from . import ScanContext, aws_pager, register_scanner


@register_scanner("EKS")
async def scan_eks_clusters(ctx: ScanContext) -> List[ScanRecord]:
    """Report EKS clusters without tags.

    ``list_clusters`` only returns names, so every cluster is described to read
    its ``tags`` mapping.
    """

    eks = ctx.client("eks")
    names = await ctx.paginate(aws_pager(eks, "list_clusters", "clusters"))
    clusters: List[Dict[str, Any]] = []
    for name in names:
        response = await ctx.call(eks.describe_cluster, name=name)
        clusters.append(response.get("cluster") or {"name": name})
    return ctx.untagged("EKS", clusters, ("name", "arn"))


__all__ = ["scan_eks_clusters"]
