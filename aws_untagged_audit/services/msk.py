"""Scanner unit for Amazon MSK (managed Kafka) clusters."""
from __future__ import annotations

import logging
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from ..records import ScanRecord
from ..utils import PageTimeoutError
from . import ScanContext, aws_pager, register_scanner

logger = logging.getLogger(__name__)


@register_scanner("MSK")
async def scan_msk_clusters(ctx: ScanContext) -> List[ScanRecord]:
    """Report MSK clusters without tags.

    MSK is missing from several regions and often denied by SCPs, so any API
    failure yields no records instead of a unit failure.
    """

    try:
        kafka = ctx.client("kafka")
        clusters = await ctx.paginate(
            aws_pager(kafka, "list_clusters_v2", "ClusterInfoList")
        )
    except (BotoCoreError, ClientError, PageTimeoutError) as exc:
        logger.debug("MSK listing unavailable in %s: %s", ctx.region, exc)
        return []
    return ctx.untagged("MSK", clusters, ("ClusterName", "ClusterArn"))


__all__ = ["scan_msk_clusters"]
