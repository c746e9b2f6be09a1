"""Report rendering and export of scan records."""
from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from .clients import ClientFactory, CredentialProvider
from .records import ScanRecord, ScanSummary
from .utils import run_blocking

logger = logging.getLogger(__name__)

REPORT_HEADERS = ("region", "service", "id")


class ExportError(RuntimeError):
    """Raised when the report cannot be exported."""


@dataclass(frozen=True)
class ExportTarget:
    """Destination of the uploaded report."""

    bucket: str
    region: str
    prefix: str = "scan"


def render_csv(records: Iterable[ScanRecord]) -> str:
    """Return the CSV report body: a header followed by one line per record."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(REPORT_HEADERS)
    for record in records:
        writer.writerow((record.region, record.service, record.id))
    return buffer.getvalue()


def report_key(prefix: str, now: Optional[datetime] = None) -> str:
    """Return the object key for a report created at *now*."""

    moment = now or datetime.now(timezone.utc)
    timestamp = moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    timestamp = timestamp.replace(":", "-").replace(".", "-")
    prefix = prefix.strip("/")
    name = f"scan-{timestamp}.csv"
    return f"{prefix}/{name}" if prefix else name


class S3Exporter:
    """Upload the CSV report to an S3 bucket."""

    def __init__(
        self,
        client_factory: ClientFactory,
        target: ExportTarget,
        credentials: Optional[CredentialProvider] = None,
    ) -> None:
        self.client_factory = client_factory
        self.target = target
        self.credentials = credentials

    async def export(
        self, records: Sequence[ScanRecord], *, now: Optional[datetime] = None
    ) -> str:
        if not self.target.bucket:
            raise ExportError("No report bucket configured")
        if self.credentials is not None and not self.credentials.has_credentials():
            raise ExportError("No credentials available to upload the report")

        key = report_key(self.target.prefix, now)
        body = render_csv(records).encode("utf-8")
        s3 = self.client_factory.client("s3", self.target.region)
        await run_blocking(
            s3.put_object,
            Bucket=self.target.bucket,
            Key=key,
            Body=body,
            ContentType="text/csv",
        )
        logger.info("Report uploaded to s3://%s/%s", self.target.bucket, key)
        return key


def write_csv(records: Iterable[ScanRecord], path: str) -> str:
    """Write the CSV report to *path*."""

    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(render_csv(records))
    return path


def write_json(records: Iterable[ScanRecord], summary: ScanSummary, path: str) -> str:
    """Write *summary* and *records* as JSON to *path*."""

    payload = {
        "summary": summary.to_dict(),
        "records": [asdict(record) for record in records],
    }
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=str)
    return path


def export_records_to_excel(records: Iterable[ScanRecord], path: str) -> str:
    """Write *records* to an Excel workbook located at *path*."""

    try:
        from openpyxl import Workbook
        from openpyxl.utils import get_column_letter
    except ImportError as exc:  # pragma: no cover - dependency missing during tests
        raise RuntimeError(
            "The 'openpyxl' package is required to export the report to Excel. "
            "Install it with 'pip install openpyxl'."
        ) from exc

    headers = ("Region", "Service", "Resource ID")
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Untagged"

    sheet.append(list(headers))
    column_widths = [len(header) for header in headers]

    for record in records:
        values = [record.region, record.service, record.id]
        sheet.append(values)
        for idx, value in enumerate(values):
            column_widths[idx] = max(column_widths[idx], len(str(value)))

    for idx, width in enumerate(column_widths, start=1):
        column_letter = get_column_letter(idx)
        sheet.column_dimensions[column_letter].width = min(width + 2, 60)

    workbook.save(path)
    return path


__all__ = [
    "ExportError",
    "ExportTarget",
    "REPORT_HEADERS",
    "S3Exporter",
    "export_records_to_excel",
    "render_csv",
    "report_key",
    "write_csv",
    "write_json",
]
