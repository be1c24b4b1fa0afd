from __future__ import annotations

import json
import logging
from contextlib import ExitStack, closing, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator
from uuid import uuid4

import boto3

from batch_loader.config import Settings
from batch_loader.db.connect import connect
from batch_loader.db.dynamo import DynamoRecordGateway
from batch_loader.db.gateway import RecordGateway
from batch_loader.db.record_store import PostgresRecordGateway
from batch_loader.ingest.processor import BatchProcessor
from batch_loader.ingest.readers import decode_records
from batch_loader.ingest.summary import BatchSummary
from batch_loader.logs import batch_logger
from batch_loader.notify.notifier import ConsoleNotifier, Notification, Notifier, SnsNotifier
from batch_loader.parsing.profiles.students import STUDENT_COLUMNS, STUDENT_KEY, STUDENT_SCHEMA
from batch_loader.parsing.schema import RecordSchema
from batch_loader.sources.objects import LocalObjectSource, ObjectSource, S3ObjectSource, extract_object_ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pipeline:
    """Collaborators one batch run needs. Built once per process by `open_pipeline`."""
    source: ObjectSource
    gateway: RecordGateway
    notifier: Notifier
    schema: RecordSchema = STUDENT_SCHEMA
    columns: tuple[str, ...] = STUDENT_COLUMNS


@dataclass(frozen=True)
class RunResult:
    batch_id: str
    summary: BatchSummary | None    # `None` when the run aborted
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.summary is not None


def _build_source(settings: Settings) -> ObjectSource:
    if settings.source_backend == "local":
        return LocalObjectSource(Path(settings.local_bucket_root))
    if settings.source_backend == "s3":
        return S3ObjectSource(boto3.client("s3", region_name=settings.region))
    raise ValueError(f"Unknown SOURCE_BACKEND: {settings.source_backend}")


def build_notifier(settings: Settings) -> Notifier:
    if settings.notifier_backend == "console":
        return ConsoleNotifier()
    if settings.notifier_backend == "sns":
        return SnsNotifier(boto3.client("sns", region_name=settings.region), topic_arn=settings.notification_topic_arn)
    raise ValueError(f"Unknown NOTIFIER_BACKEND: {settings.notifier_backend}")


@contextmanager
def open_pipeline(settings: Settings, *, notifier: Notifier | None = None) -> Iterator[Pipeline]:
    """
    Build the pipeline's collaborators from `settings`, and release them on exit.

    Raises `ValueError` on unknown backend names and `ConnectivityError` when
    the Postgres store cannot be reached.
    """
    source = _build_source(settings)
    notifier = notifier or build_notifier(settings)

    with ExitStack() as stack:
        gateway: RecordGateway
        if settings.store_backend == "postgres":
            conn = stack.enter_context(connect(settings.database_url))
            gateway = PostgresRecordGateway(
                conn, table_name=settings.table_name, columns=STUDENT_COLUMNS, key=STUDENT_KEY
            )
        elif settings.store_backend == "dynamodb":
            table = boto3.resource("dynamodb", region_name=settings.region).Table(settings.table_name)
            gateway = DynamoRecordGateway(table, columns=STUDENT_COLUMNS)
        else:
            raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")

        yield Pipeline(source=source, gateway=gateway, notifier=notifier)


def describe_failure(e: BaseException) -> str:
    return f"{type(e).__name__}: {e}"


def send_notification(notifier: Notifier, notification: Notification) -> bool:
    """Deliver once. A failed delivery is logged and swallowed, never retried."""
    try:
        notifier.publish(notification)
    except Exception:
        logger.exception("%s >> Unable to publish notification", notification.batch_id)
        return False
    return True


def run_batch(
    event: Any,
    *,
    pipeline: Pipeline,
    settings: Settings,
    batch_id: str | None = None,
) -> RunResult:
    """
    End-to-end batch run for one storage event:
      - find the object the event points at,
      - decode the whole file (a decode error aborts before anything is stored),
      - validate and store every record,
      - publish exactly one notification: the summary, or the fatal error.

    Never raises: fatal errors come back as a `RunResult` without a summary.
    """
    batch_id = batch_id or str(uuid4())
    log = batch_logger(logger, batch_id)
    log.info("Incoming event: %s", json.dumps(event, default=str))

    try:
        ref = extract_object_ref(event, inbound_bucket=settings.inbound_bucket)
        log.info("Extracted bucket and file name %s", ref)

        with closing(pipeline.source.open(ref)) as stream:
            records = list(decode_records(stream, columns=pipeline.columns))
        log.info("Number of records fetched from file: %d", len(records))

        processor = BatchProcessor(pipeline.schema, pipeline.gateway, log=log)
        summary = processor.process(records)
        log.info("Batch run results: %s", summary.render_one_line())

    except Exception as e:
        log.exception("Error encountered while processing batch")
        error = describe_failure(e)
        send_notification(pipeline.notifier, Notification(batch_id=batch_id, message=error))
        return RunResult(batch_id=batch_id, summary=None, error=error)

    send_notification(pipeline.notifier, Notification(batch_id=batch_id, message=json.dumps(summary.to_payload())))
    return RunResult(batch_id=batch_id, summary=summary)


def run_event(event: Any, *, settings: Settings, batch_id: str | None = None) -> RunResult:
    """
    Open the pipeline from `settings`, run one batch, release everything.

    If the pipeline cannot even be opened (e.g. Postgres is down) the failure
    is still notified, so every invocation yields exactly one notification.
    """
    batch_id = batch_id or str(uuid4())
    notifier = build_notifier(settings)

    result: RunResult | None = None
    try:
        with open_pipeline(settings, notifier=notifier) as pipeline:
            result = run_batch(event, pipeline=pipeline, settings=settings, batch_id=batch_id)
    except Exception as e:
        if result is not None:
            # failed while releasing the store; the run already notified
            logger.exception("%s >> Unable to close pipeline", batch_id)
            return result
        logger.exception("%s >> Unable to start batch", batch_id)
        error = describe_failure(e)
        send_notification(notifier, Notification(batch_id=batch_id, message=error))
        result = RunResult(batch_id=batch_id, summary=None, error=error)

    return result
