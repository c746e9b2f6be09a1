"""AWS Lambda entry point for scheduled scans."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from .config import ScanConfig
from .core import scan

logger = logging.getLogger(__name__)


def lambda_handler(event: Optional[Mapping[str, Any]], context: Any = None) -> Dict[str, Any]:
    """Run a scan and return the summary as an API Gateway style response.

    ``event`` may carry ``regions`` and ``services`` overrides, either as
    comma separated strings or lists.
    """

    config = ScanConfig.from_env()
    event = event or {}
    config = config.with_overrides(
        regions=event.get("regions"),
        services=event.get("services"),
    )
    logging.getLogger().setLevel(config.log_level)

    result = scan(config)
    summary = result.summary.to_dict()
    logger.info("Scan summary: %s", summary)
    return {"statusCode": 200, "body": json.dumps(summary)}


__all__ = ["lambda_handler"]
