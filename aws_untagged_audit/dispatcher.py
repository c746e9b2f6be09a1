"""Concurrent execution of scanner units across regions."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Mapping, Optional, Sequence

from .records import UnitOutcome
from .services import ScanContext, ScannerUnit
from .utils import run_worker_pool

logger = logging.getLogger(__name__)

DEFAULT_MAX_REGION_CONCURRENCY = 3
DEFAULT_UNIT_TIMEOUT = 60.0

ContextFactory = Callable[[str], ScanContext]


class RegionDispatcher:
    """Run the selected scanner units for every region with bounded workers.

    Up to ``max_concurrency`` workers share one claim cursor over the regions.
    A worker runs all units of its region concurrently, each under
    ``unit_timeout``, and claims the next region only after every unit has
    settled. Unit errors and timeouts become failed :class:`UnitOutcome`
    entries and never stop a worker.
    """

    def __init__(
        self,
        units: Mapping[str, ScannerUnit],
        context_factory: ContextFactory,
        *,
        max_concurrency: int = DEFAULT_MAX_REGION_CONCURRENCY,
        unit_timeout: Optional[float] = DEFAULT_UNIT_TIMEOUT,
    ) -> None:
        self.units = dict(units)
        self.context_factory = context_factory
        self.max_concurrency = max_concurrency
        self.unit_timeout = unit_timeout
        self.scanned_regions: List[str] = []

    async def run(self, regions: Sequence[str]) -> List[UnitOutcome]:
        outcomes: List[UnitOutcome] = []

        async def scan_region(region: str) -> None:
            outcomes.extend(await self.scan_region(region))

        cursor = await run_worker_pool(regions, scan_region, self.max_concurrency)
        self.scanned_regions = list(cursor.claimed)
        return outcomes

    async def scan_region(self, region: str) -> List[UnitOutcome]:
        """Run every unit for *region* and return one outcome per unit."""

        try:
            ctx = self.context_factory(region)
        except Exception as exc:
            logger.warning("Could not prepare scan context for %s: %s", region, exc)
            return [UnitOutcome(service=name, region=region, error=exc) for name in self.units]

        outcomes = await asyncio.gather(
            *(self._invoke(name, unit, ctx) for name, unit in self.units.items())
        )
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(
            "Region %s done: %d records, %d/%d units failed",
            region,
            sum(len(outcome.records) for outcome in outcomes),
            failed,
            len(outcomes),
        )
        return list(outcomes)

    async def _invoke(self, name: str, unit: ScannerUnit, ctx: ScanContext) -> UnitOutcome:
        try:
            records = await asyncio.wait_for(unit(ctx), self.unit_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Scanner %s timed out in %s", name, ctx.region)
            return UnitOutcome(service=name, region=ctx.region, error=exc)
        except Exception as exc:
            logger.warning("Scanner %s failed in %s: %s", name, ctx.region, exc)
            return UnitOutcome(service=name, region=ctx.region, error=exc)

        return UnitOutcome(
            service=name,
            region=ctx.region,
            records=[record.with_region(ctx.region) for record in records or []],
        )


__all__ = [
    "DEFAULT_MAX_REGION_CONCURRENCY",
    "DEFAULT_UNIT_TIMEOUT",
    "RegionDispatcher",
]
