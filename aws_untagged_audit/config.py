"""Run-scope configuration for untagged resource scans."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Tuple, TypeVar

from .dispatcher import DEFAULT_MAX_REGION_CONCURRENCY, DEFAULT_UNIT_TIMEOUT
from .global_scan import DEFAULT_GLOBAL_CONCURRENCY
from .regions import DEFAULT_CONTROL_REGION
from .utils import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE, split_names

T = TypeVar("T")

DEFAULT_PAGE_TIMEOUT = 20.0
DEFAULT_REPORT_PREFIX = "scan"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_POSITIVE_FIELDS = (
    "max_region_concurrency",
    "global_concurrency",
    "unit_timeout",
    "page_timeout",
    "max_pages",
    "page_size",
)


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ValueError(f"Expected a boolean value, got '{value}'")


def _positive(convert: Callable[[str], T]) -> Callable[[str], T]:
    def parse(value: str) -> T:
        result = convert(value)
        if result <= 0:
            raise ValueError(f"Expected a positive number, got '{value}'")
        return result

    return parse


positive_int = _positive(int)
positive_float = _positive(float)


def parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level '{value}'")
    return level


def _name_list(value: str) -> Optional[Tuple[str, ...]]:
    return split_names(value) or None


@dataclass(frozen=True)
class ScanConfig:
    """Settings consumed by :func:`aws_untagged_audit.core.run_scan`.

    ``regions`` and ``services`` are optional overrides; ``None`` means
    "discover regions" and "run every registered scanner". Export is skipped
    when ``report_bucket`` is unset.
    """

    regions: Optional[Tuple[str, ...]] = None
    services: Optional[Tuple[str, ...]] = None
    scan_global: bool = True
    max_region_concurrency: int = DEFAULT_MAX_REGION_CONCURRENCY
    global_concurrency: int = DEFAULT_GLOBAL_CONCURRENCY
    unit_timeout: float = DEFAULT_UNIT_TIMEOUT
    page_timeout: float = DEFAULT_PAGE_TIMEOUT
    max_pages: int = DEFAULT_MAX_PAGES
    page_size: int = DEFAULT_PAGE_SIZE
    control_region: str = DEFAULT_CONTROL_REGION
    home_region: str = DEFAULT_CONTROL_REGION
    report_bucket: Optional[str] = None
    report_region: Optional[str] = None
    report_prefix: str = DEFAULT_REPORT_PREFIX
    profile: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value!r}")
        parse_log_level(self.log_level)

    @property
    def export_region(self) -> str:
        return self.report_region or self.home_region

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ScanConfig":
        """Build a configuration from ``SCAN_*`` environment variables."""

        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        def read(name: str, field: str, convert: Callable[[str], Any] = str) -> None:
            raw = env.get(name)
            if raw is None or not raw.strip():
                return
            try:
                values[field] = convert(raw.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid value for {name}: {exc}") from exc

        read("SCAN_REGIONS", "regions", _name_list)
        read("SCAN_SERVICES", "services", _name_list)
        read("SCAN_GLOBAL_RESOURCES", "scan_global", parse_bool)
        read("SCAN_MAX_REGION_CONCURRENCY", "max_region_concurrency", positive_int)
        read("SCAN_GLOBAL_CONCURRENCY", "global_concurrency", positive_int)
        read("SCAN_UNIT_TIMEOUT", "unit_timeout", positive_float)
        read("SCAN_PAGE_TIMEOUT", "page_timeout", positive_float)
        read("SCAN_MAX_PAGES", "max_pages", positive_int)
        read("SCAN_PAGE_SIZE", "page_size", positive_int)
        read("SCAN_CONTROL_REGION", "control_region")
        read("SCAN_HOME_REGION", "home_region")
        read("SCAN_REPORT_BUCKET", "report_bucket")
        read("SCAN_REPORT_REGION", "report_region")
        read("SCAN_REPORT_PREFIX", "report_prefix")
        read("AWS_PROFILE", "profile")
        read("LOG_LEVEL", "log_level", parse_log_level)
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ScanConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if "regions" in changes:
            changes["regions"] = split_names(changes["regions"]) or None
        if "services" in changes:
            changes["services"] = split_names(changes["services"]) or None
        return replace(self, **changes)


__all__ = [
    "DEFAULT_PAGE_TIMEOUT",
    "DEFAULT_REPORT_PREFIX",
    "ScanConfig",
    "parse_bool",
    "parse_log_level",
    "positive_float",
    "positive_int",
]
