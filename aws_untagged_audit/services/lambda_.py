"""Scanner unit for AWS Lambda functions."""
from __future__ import annotations

from typing import Any, Dict, List

from ..records import ScanRecord
from . import ScanContext, aws_pager, register_scanner


@register_scanner("LAMBDA")
async def scan_lambda_functions(ctx: ScanContext) -> List[ScanRecord]:
    """Report Lambda functions without tags."""

    lambda_client = ctx.client("lambda")
    functions = await ctx.paginate(aws_pager(lambda_client, "list_functions", "Functions"))

    described: List[Dict[str, Any]] = []
    for function in functions:
        item = dict(function)
        arn = item.get("FunctionArn")
        if arn:
            response = await ctx.call(lambda_client.list_tags, Resource=arn)
            item["Tags"] = response.get("Tags") or {}
        described.append(item)
    return ctx.untagged("LAMBDA", described, ("FunctionName", "FunctionArn"))


__all__ = ["scan_lambda_functions"]
