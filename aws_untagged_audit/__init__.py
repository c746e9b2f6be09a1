"""Untagged AWS resource scanner."""

from __future__ import annotations

from .config import ScanConfig
from .core import ScanResult, aggregate, print_records, run_scan, scan
from .records import GLOBAL_REGION, ScanRecord, ScanSummary, UnitOutcome
from .tags import extract_tags, has_no_tags

__all__ = [
    "GLOBAL_REGION",
    "ScanConfig",
    "ScanRecord",
    "ScanResult",
    "ScanSummary",
    "UnitOutcome",
    "aggregate",
    "extract_tags",
    "has_no_tags",
    "print_records",
    "run_scan",
    "scan",
]
