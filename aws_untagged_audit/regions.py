"""Resolution of the set of regions scanned by a run."""
from __future__ import annotations

import logging
from typing import Sequence, Tuple, Union

from botocore.exceptions import BotoCoreError, ClientError

from .clients import ClientFactory
from .utils import run_blocking, split_names

logger = logging.getLogger(__name__)

DEFAULT_CONTROL_REGION = "us-east-1"


class RegionResolutionError(RuntimeError):
    """Raised when no region set can be determined for a run."""


class RegionResolver:
    """Return the regions to scan, from an override or ``describe_regions``."""

    def __init__(
        self,
        client_factory: ClientFactory,
        *,
        control_region: str = DEFAULT_CONTROL_REGION,
        override: Union[str, Sequence[str], None] = None,
    ) -> None:
        self.client_factory = client_factory
        self.control_region = control_region
        self.override = split_names(override)

    async def list_regions(self) -> Tuple[str, ...]:
        if self.override:
            logger.info("Using region override: %s", ", ".join(self.override))
            return self.override

        try:
            ec2 = self.client_factory.client("ec2", self.control_region)
            response = await run_blocking(ec2.describe_regions)
        except (BotoCoreError, ClientError) as exc:
            raise RegionResolutionError(
                f"Failed to describe regions via {self.control_region}: {exc}"
            ) from exc

        regions = split_names(
            entry.get("RegionName") for entry in response.get("Regions") or []
        )
        if not regions:
            raise RegionResolutionError(
                f"describe_regions in {self.control_region} returned no regions"
            )
        logger.info("Discovered %d regions", len(regions))
        return regions


__all__ = [
    "DEFAULT_CONTROL_REGION",
    "RegionResolutionError",
    "RegionResolver",
]
