"""Command line interface for the untagged resource scan."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import ScanConfig
from .core import group_counts, print_records, scan
from .export import export_records_to_excel, write_csv, write_json
from .regions import RegionResolutionError
from .services import SCANNERS


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        description="Report AWS resources without tags across regions."
    )
    parser.add_argument("--profile", help="AWS CLI profile to use", default=None)
    parser.add_argument(
        "--regions",
        default=None,
        help="Comma separated regions to scan instead of discovering them",
    )
    parser.add_argument(
        "--services",
        nargs="*",
        default=None,
        help="Subset of scanners to run (see --list-services)",
    )
    parser.add_argument(
        "--no-global",
        dest="scan_global",
        action="store_false",
        default=None,
        help="Skip the account-global S3 bucket scan",
    )
    parser.add_argument("--max-region-concurrency", type=int, default=None)
    parser.add_argument("--unit-timeout", type=float, default=None, help="Seconds per scanner run")
    parser.add_argument("--page-timeout", type=float, default=None, help="Seconds per API page")
    parser.add_argument("--max-pages", type=int, default=None, help="Page cap per listing")
    parser.add_argument("--home-region", default=None, help="Region reporting global resources")
    parser.add_argument("--report-bucket", default=None, help="S3 bucket receiving the CSV report")
    parser.add_argument("--report-region", default=None, help="Region of the report bucket")
    parser.add_argument("--report-prefix", default=None, help="Key prefix for the CSV report")
    parser.add_argument("--csv", dest="csv_path", help="Optional path to write the CSV report")
    parser.add_argument("--json", dest="json_path", help="Optional path to export records as JSON")
    parser.add_argument(
        "--excel",
        dest="excel_path",
        help="Optional path to export records as an Excel workbook (.xlsx)",
    )
    parser.add_argument(
        "--list-services", action="store_true", help="Print the available scanners and exit"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ScanConfig:
    """Layer command line arguments over the environment configuration."""

    config = ScanConfig.from_env()
    return config.with_overrides(
        profile=args.profile,
        regions=args.regions,
        services=args.services or None,
        scan_global=args.scan_global,
        max_region_concurrency=args.max_region_concurrency,
        unit_timeout=args.unit_timeout,
        page_timeout=args.page_timeout,
        max_pages=args.max_pages,
        home_region=args.home_region,
        report_bucket=args.report_bucket,
        report_region=args.report_region,
        report_prefix=args.report_prefix,
        log_level=args.log_level.upper() if args.log_level else None,
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m aws_untagged_audit``."""

    args = parse_args(argv)

    if args.list_services:
        for name in SCANNERS:
            print(name)
        return 0

    try:
        config = build_config(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    configure_logging(config.log_level)

    try:
        result = scan(config)
    except (RegionResolutionError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print_records(result.records)
    for service, count in group_counts(result.records).items():
        print(f"{service}: {count}")
    if result.failures:
        print(f"{len(result.failures)} scanner run(s) failed; see log for details.", file=sys.stderr)
    print(json.dumps(result.summary.to_dict()))

    if args.csv_path:
        print(f"CSV report written to {write_csv(result.records, args.csv_path)}")

    if args.json_path:
        write_json(result.records, result.summary, args.json_path)
        print(f"Records exported to {args.json_path}")

    if args.excel_path:
        try:
            path = export_records_to_excel(result.records, args.excel_path)
        except RuntimeError as exc:
            print(f"Failed to export Excel report: {exc}", file=sys.stderr)
        else:
            print(f"Excel report written to {path}")

    return 0


__all__ = ["build_config", "configure_logging", "main", "parse_args"]
