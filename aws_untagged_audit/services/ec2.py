"""Scanner units for Amazon EC2 compute and block storage."""
from __future__ import annotations

from typing import Any, Iterator, List, Mapping

from ..records import ScanRecord
from . import ScanContext, aws_pager, register_scanner


def _instances(response: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    for reservation in response.get("Reservations") or []:
        yield from reservation.get("Instances") or []


@register_scanner("EC2_INSTANCE")
async def scan_ec2_instances(ctx: ScanContext) -> List[ScanRecord]:
    """Report EC2 instances without tags."""

    ec2 = ctx.client("ec2")
    instances = await ctx.paginate(
        aws_pager(ec2, "describe_instances", "Reservations", extract=_instances)
    )
    return ctx.untagged("EC2_INSTANCE", instances, ("InstanceId",))


@register_scanner("EBS_VOLUME")
async def scan_ebs_volumes(ctx: ScanContext) -> List[ScanRecord]:
    ec2 = ctx.client("ec2")
    volumes = await ctx.paginate(aws_pager(ec2, "describe_volumes", "Volumes"))
    return ctx.untagged("EBS_VOLUME", volumes, ("VolumeId",))


@register_scanner("EBS_SNAPSHOT")
async def scan_ebs_snapshots(ctx: ScanContext) -> List[ScanRecord]:
    """Report snapshots owned by the account that carry no tags."""

    ec2 = ctx.client("ec2")
    snapshots = await ctx.paginate(
        aws_pager(ec2, "describe_snapshots", "Snapshots", OwnerIds=["self"])
    )
    return ctx.untagged("EBS_SNAPSHOT", snapshots, ("SnapshotId",))


__all__ = ["scan_ebs_snapshots", "scan_ebs_volumes", "scan_ec2_instances"]
