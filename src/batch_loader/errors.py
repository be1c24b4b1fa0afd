from __future__ import annotations


class PipelineError(Exception):
    """Base for every error the pipeline raises on purpose."""


## -- fatal: abort the run before or during processing

class TriggerError(PipelineError):
    """The storage event does not name an object this pipeline should load."""


class SourceReadError(PipelineError):
    """The source object does not exist or cannot be opened."""


class DecodeError(PipelineError):
    """The byte stream is unreadable or not well-formed CSV."""


class ConnectivityError(PipelineError):
    """The record store is unreachable. Aborts the whole batch."""


class NotificationError(PipelineError):
    """The summary notification could not be delivered."""


## -- per-record: converted to outcomes, never escape the batch processor

class ValidationError(PipelineError):
    """One violated schema constraint on one field."""

    def __init__(self, field: str, detail: str) -> None:
        super().__init__(f"{field}: {detail}")
        self.field = field      # schema field name
        self.detail = detail    # human readable constraint text


class PersistenceError(PipelineError):
    """The store refused a single record."""

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause      # the store's own text, verbatim
