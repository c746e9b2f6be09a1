"""Scanner unit for Elastic Load Balancing (application, network, gateway)."""
from __future__ import annotations

from typing import Any, Dict, List

from ..records import ScanRecord
from ..utils import batch_iterable
from . import ScanContext, aws_pager, register_scanner

TAG_BATCH_SIZE = 20  # describe_tags accepts at most 20 ARNs


@register_scanner("ELB")
async def scan_load_balancers(ctx: ScanContext) -> List[ScanRecord]:
    """Report ELBv2 load balancers without tags.

    The listing carries no tags, so they are looked up with ``describe_tags``
    and attached to each load balancer under ``Tags``.
    """

    elbv2 = ctx.client("elbv2")
    balancers = await ctx.paginate(
        aws_pager(elbv2, "describe_load_balancers", "LoadBalancers")
    )

    by_arn: Dict[str, Dict[str, Any]] = {}
    for balancer in balancers:
        arn = balancer.get("LoadBalancerArn")
        if arn:
            by_arn[arn] = dict(balancer)

    for batch in batch_iterable(list(by_arn), TAG_BATCH_SIZE):
        response = await ctx.call(elbv2.describe_tags, ResourceArns=list(batch))
        for description in response.get("TagDescriptions") or []:
            balancer = by_arn.get(description.get("ResourceArn", ""))
            if balancer is not None:
                balancer["Tags"] = description.get("Tags") or []

    return ctx.untagged("ELB", by_arn.values(), ("LoadBalancerName", "LoadBalancerArn"))


__all__ = ["scan_load_balancers"]
