"""Scanner unit for Amazon Route 53 hosted zones (account-global)."""
from __future__ import annotations

from typing import Any, Dict, List

from ..records import GLOBAL_REGION, ScanRecord
from ..utils import batch_iterable
from . import ScanContext, aws_pager, register_scanner

TAG_BATCH_SIZE = 10  # list_tags_for_resources accepts at most 10 zone ids


def _zone_id(zone: Dict[str, Any]) -> str:
    return str(zone.get("Id", "")).rsplit("/", 1)[-1]


@register_scanner("ROUTE53")
async def scan_hosted_zones(ctx: ScanContext) -> List[ScanRecord]:
    """Report hosted zones without tags once per run.

    Hosted zones are not regional; only the home region lists them and the
    records carry the ``global`` region.
    """

    if not ctx.is_home_region:
        return []

    route53 = ctx.client("route53")
    listed = await ctx.paginate(aws_pager(route53, "list_hosted_zones", "HostedZones"))
    zones = {_zone_id(zone): dict(zone) for zone in listed}
    zones.pop("", None)

    for batch in batch_iterable(list(zones), TAG_BATCH_SIZE):
        response = await ctx.call(
            route53.list_tags_for_resources,
            ResourceType="hostedzone",
            ResourceIds=list(batch),
        )
        for tag_set in response.get("ResourceTagSets") or []:
            zone = zones.get(tag_set.get("ResourceId", ""))
            if zone is not None:
                zone["Tags"] = tag_set.get("Tags") or []

    return ctx.untagged("ROUTE53", zones.values(), ("Name", "Id"), region=GLOBAL_REGION)


__all__ = ["scan_hosted_zones"]
