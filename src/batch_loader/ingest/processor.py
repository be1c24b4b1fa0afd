from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from batch_loader.db.gateway import RecordGateway
from batch_loader.ingest.summary import BatchSummary, ErrorDetail, FailureKind
from batch_loader.parsing.schema import RecordSchema
from batch_loader.parsing.types import Invalid, Record, Rejected

logger = logging.getLogger(__name__)


@dataclass
class _Tally:
    """Running counts for one `process()` call. Never shared."""
    processed: int = 0
    failed: int = 0
    invalid: int = 0
    details: list[ErrorDetail] = field(default_factory=list)

    def fail(self, row: int, message: str, kind: FailureKind) -> None:
        self.failed += 1
        if kind is FailureKind.validation:
            self.invalid += 1
        self.details.append(ErrorDetail(row=row, message=message, kind=kind))

    def freeze(self) -> BatchSummary:
        return BatchSummary(
            total_records_processed=self.processed,
            total_inserted_records=self.processed - self.failed,
            total_failed_records=self.failed,
            records_failed_due_to_validation=self.invalid,
            error_details=tuple(self.details),
        )


class BatchProcessor:
    """
    Validate then store every record of a batch, one at a time, in input order.

    - invalid rows -> one `validation` error detail, never sent to the store,
    - valid rows the store refuses -> one `persistence` error detail,
    - valid rows the store accepts -> counted as inserted.

    A failing row never stops the rows after it. The only way out early is an
    exception from the gateway itself (e.g. `ConnectivityError`), which
    propagates and leaves no summary.
    """

    def __init__(
        self,
        schema: RecordSchema,
        gateway: RecordGateway,
        *,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self.schema = schema
        self.gateway = gateway
        self.log = log or logger

    def process(self, records: Iterable[Record]) -> BatchSummary:
        tally = _Tally()

        for row, record in enumerate(records, start=1):
            tally.processed += 1

            verdict = self.schema.validate(record)
            if isinstance(verdict, Invalid):
                self.log.error("Unable to insert item in row %d due to validation failure: %s", row, verdict.message)
                tally.fail(row, verdict.message, FailureKind.validation)
                continue

            outcome = self.gateway.store(record)
            if isinstance(outcome, Rejected):
                self.log.error("Unable to insert item in row %d: %s", row, outcome.reason)
                tally.fail(row, outcome.reason, FailureKind.persistence)

        if tally.processed == 0:
            self.log.info("No records to process in data-set")

        return tally.freeze()
