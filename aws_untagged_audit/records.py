"""Data models for untagged resource scan results."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

GLOBAL_REGION = "global"
"""Region value stamped on records for account-global resources."""


@dataclass(frozen=True)
class ScanRecord:
    """A single resource observed without tags."""

    service: str
    id: str
    region: str = ""

    def sort_key(self) -> tuple[str, str, str]:
        """Tuple used to order records deterministically."""

        return (str(self.region), str(self.service), str(self.id))

    def with_region(self, region: str) -> "ScanRecord":
        """Return a copy stamped with *region* unless one is already set."""

        if self.region:
            return self
        return ScanRecord(service=self.service, id=self.id, region=region)


@dataclass
class UnitOutcome:
    """Result of one scanner unit invocation for one region.

    Failures are data: ``error`` holds the exception that ended the invocation
    and ``records`` is then always empty.
    """

    service: str
    region: str
    records: List[ScanRecord] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def reason(self) -> str:
        if self.error is None:
            return ""
        message = str(self.error)
        name = type(self.error).__name__
        return f"{name}: {message}" if message else name


@dataclass(frozen=True)
class ScanSummary:
    """Structured summary returned to the caller of a scan run."""

    scanned_regions: int
    untagged_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "scannedRegions": self.scanned_regions,
            "untaggedCount": self.untagged_count,
        }


__all__ = ["GLOBAL_REGION", "ScanRecord", "ScanSummary", "UnitOutcome"]
