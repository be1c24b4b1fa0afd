from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Why a row failed."""
    validation = "validation"
    persistence = "persistence"


@dataclass(frozen=True, slots=True)
class ErrorDetail:
    """One failed row."""
    row: int                # 1-based position of the record in the batch
    message: str
    kind: FailureKind

    def __post_init__(self) -> None:
        if self.row < 1:
            raise ValueError(f"row must be 1-based, got {self.row}")

    def to_payload(self) -> dict[str, Any]:
        return {"row": self.row, "message": self.message}


@dataclass(frozen=True)
class BatchSummary:
    """
    Outcome of one batch run. Built once, never mutated.

    Invariants (checked on construction):
    - `total_records_processed == total_inserted_records + total_failed_records`
    - `records_failed_due_to_validation <= total_failed_records`
    """
    total_records_processed: int
    total_inserted_records: int
    total_failed_records: int
    records_failed_due_to_validation: int
    error_details: tuple[ErrorDetail, ...] = ()

    def __post_init__(self) -> None:
        counters = (
            self.total_records_processed,
            self.total_inserted_records,
            self.total_failed_records,
            self.records_failed_due_to_validation,
        )
        if any(c < 0 for c in counters):
            raise ValueError(f"counters must be >= 0: {counters}")
        if self.total_records_processed != self.total_inserted_records + self.total_failed_records:
            raise ValueError("processed must equal inserted + failed")
        if self.records_failed_due_to_validation > self.total_failed_records:
            raise ValueError("validation failures cannot exceed total failures")

    @classmethod
    def empty(cls) -> BatchSummary:
        return cls(0, 0, 0, 0, ())

    @property
    def records_failed_due_to_persistence(self) -> int:
        return self.total_failed_records - self.records_failed_due_to_validation

    def to_payload(self) -> dict[str, Any]:
        """Wire shape published in the batch notification."""
        return {
            "totalRecordsProcessed": self.total_records_processed,
            "totalInsertedRecords": self.total_inserted_records,
            "totalFailedRecords": self.total_failed_records,
            "recordsFailedDueToValidation": self.records_failed_due_to_validation,
            "errorDetails": [d.to_payload() for d in self.error_details],
        }

    def render_one_line(self) -> str:
        """How the summary is formatted for the terminal."""
        return (
            f"processed={self.total_records_processed} inserted={self.total_inserted_records} "
            f"failed={self.total_failed_records} invalid={self.records_failed_due_to_validation}"
        )
