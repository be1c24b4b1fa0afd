from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from batch_loader.errors import ValidationError

from .primitives import check_max_length, check_min_length, optional_text, require_text
from .types import VALID, Invalid, Record, ValidationOutcome


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Any given field's configurable expectations."""
    name: str                       # column name as it appears in the record.
    required: bool = True           # whether or not this field's value must exist.
    min_length: int | None = None   # inclusive, in characters.
    max_length: int | None = None   # inclusive, in characters.

    def check(self, record: Record) -> None:
        """Raise `ValidationError` on the first rule this field breaks."""
        raw = record.get(self.name)
        if self.required:
            value = require_text(raw, field=self.name)
        else:
            value = optional_text(raw, field=self.name)
            if value is None:
                return

        if self.min_length is not None:
            check_min_length(value, self.min_length, field=self.name)
        if self.max_length is not None:
            check_max_length(value, self.max_length, field=self.name)


@dataclass(frozen=True, slots=True)
class RecordSchema:
    """
    A compiled record schema.

    Validation never stops at the first broken field: every field is checked
    and all violations come back together, in `fields` order. Each field
    reports at most one violation (presence is checked before length).

    Instances are immutable and hold no per-call state, so one schema can be
    shared by every validation call of a process.
    """
    name: str
    version: int
    fields: Sequence[FieldSpec]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def validate(self, record: Record) -> ValidationOutcome:
        """Return `VALID`, or `Invalid` listing every violated rule."""
        reasons: list[str] = []
        for f in self.fields:
            try:
                f.check(record)
            except ValidationError as e:
                reasons.append(str(e))

        if reasons:
            return Invalid(reasons=tuple(reasons))
        return VALID
