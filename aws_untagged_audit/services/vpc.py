"""Scanner units for Amazon VPC networking resources."""
from __future__ import annotations

from typing import Any, List, Mapping

from ..records import ScanRecord
from . import ScanContext, aws_pager, register_scanner

BOUND_STATUSES = frozenset({"BIND", "BINDING", "ASSOCIATED", "ASSOCIATING"})
UNBOUND_STATUSES = frozenset({"UNBIND", "UNBINDING", "UNBOUND", "AVAILABLE"})
ASSOCIATION_FIELDS = (
    "AssociationId",
    "InstanceId",
    "NetworkInterfaceId",
    "PrivateIpAddress",
    "PrivateAddressId",
    "AddressBindInfo",
)


def is_unbound_address(address: Mapping[str, Any]) -> bool:
    """Return ``True`` when an Elastic IP is not attached to anything.

    A recognised status wins. Otherwise the address counts as bound as soon as
    any association field is populated.
    """

    status = str(address.get("AddressStatus") or address.get("Status") or "").upper()
    if status in BOUND_STATUSES:
        return False
    if status in UNBOUND_STATUSES:
        return True
    return not any(address.get(name) for name in ASSOCIATION_FIELDS)


@register_scanner("EIP")
async def scan_elastic_ips(ctx: ScanContext) -> List[ScanRecord]:
    """Report unattached Elastic IPs without tags."""

    ec2 = ctx.client("ec2")
    response = await ctx.call(ec2.describe_addresses)
    return ctx.untagged(
        "EIP",
        response.get("Addresses") or [],
        ("AllocationId", "PublicIp", "CarrierIp"),
        where=is_unbound_address,
    )


@register_scanner("NAT_GATEWAY")
async def scan_nat_gateways(ctx: ScanContext) -> List[ScanRecord]:
    ec2 = ctx.client("ec2")
    gateways = await ctx.paginate(aws_pager(ec2, "describe_nat_gateways", "NatGateways"))
    return ctx.untagged("NAT_GATEWAY", gateways, ("NatGatewayId",))


@register_scanner("VPN_GATEWAY")
async def scan_vpn_gateways(ctx: ScanContext) -> List[ScanRecord]:
    ec2 = ctx.client("ec2")
    response = await ctx.call(ec2.describe_vpn_gateways)
    return ctx.untagged("VPN_GATEWAY", response.get("VpnGateways") or [], ("VpnGatewayId",))


@register_scanner("TRANSIT_GATEWAY")
async def scan_transit_gateways(ctx: ScanContext) -> List[ScanRecord]:
    ec2 = ctx.client("ec2")
    gateways = await ctx.paginate(
        aws_pager(ec2, "describe_transit_gateways", "TransitGateways")
    )
    return ctx.untagged("TRANSIT_GATEWAY", gateways, ("TransitGatewayId",))


@register_scanner("VPC")
async def scan_vpcs(ctx: ScanContext) -> List[ScanRecord]:
    ec2 = ctx.client("ec2")
    vpcs = await ctx.paginate(aws_pager(ec2, "describe_vpcs", "Vpcs"))
    return ctx.untagged("VPC", vpcs, ("VpcId",))


@register_scanner("SECURITY_GROUP")
async def scan_security_groups(ctx: ScanContext) -> List[ScanRecord]:
    ec2 = ctx.client("ec2")
    groups = await ctx.paginate(
        aws_pager(ec2, "describe_security_groups", "SecurityGroups")
    )
    return ctx.untagged("SECURITY_GROUP", groups, ("GroupId", "GroupName"))


__all__ = [
    "is_unbound_address",
    "scan_elastic_ips",
    "scan_nat_gateways",
    "scan_security_groups",
    "scan_transit_gateways",
    "scan_vpcs",
    "scan_vpn_gateways",
]
