from __future__ import annotations

from typing import Any, Protocol, Sequence

from batch_loader.errors import PersistenceError
from batch_loader.parsing.types import STORED, PersistenceOutcome, Record, Rejected


class RecordGateway(Protocol):
    """
    Stores one record at a time.

    Returns `Stored` or `Rejected(reason)` for the record; raises
    `ConnectivityError` only when the store cannot be reached at all.
    """
    def store(self, record: Record) -> PersistenceOutcome: ...


def project_item(record: Record, columns: Sequence[str]) -> dict[str, Any]:
    """
    The stored item: only the configured columns that are present and non-empty.
    An absent optional field is left out instead of being written as empty.
    """
    item: dict[str, Any] = {}
    for c in columns:
        v = record.get(c)
        if v is None or v == "":
            continue
        item[c] = v
    return item


class BaseRecordGateway:
    """
    Shared `store()` for concrete gateways.

    Subclasses implement `_put()` and translate their driver's errors:
    - a refusal of this one record -> `PersistenceError(cause)`,
    - a dead or unreachable store -> `ConnectivityError`.
    """

    def __init__(self, *, columns: Sequence[str]) -> None:
        self.columns = tuple(columns)

    def _put(self, item: dict[str, Any]) -> None:
        raise NotImplementedError

    def store(self, record: Record) -> PersistenceOutcome:
        try:
            self._put(project_item(record, self.columns))
        except PersistenceError as e:
            return Rejected(reason=e.cause)
        return STORED
