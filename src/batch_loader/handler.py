"""
Serverless entry point: invoked by the object store's event notification
when a file lands in the inbound bucket.
"""
from __future__ import annotations

from typing import Any

from batch_loader.cli.loader import run_event
from batch_loader.config import get_settings
from batch_loader.logs import configure_logging


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    settings = get_settings()
    configure_logging(settings.log_level)

    result = run_event(event, settings=settings)
    if result.summary is not None:
        return {"batchId": result.batch_id, "status": "succeeded", "summary": result.summary.to_payload()}
    return {"batchId": result.batch_id, "status": "failed", "error": result.error}
