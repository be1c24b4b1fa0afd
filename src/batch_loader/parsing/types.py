from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

# One decoded CSV row: retained field name -> trimmed cell text.
Record = Mapping[str, str]


@dataclass(frozen=True, slots=True)
class Valid:
    """Record passed every schema rule."""


@dataclass(frozen=True, slots=True)
class Invalid:
    """Record broke one or more schema rules."""
    reasons: tuple[str, ...]    # every violation, in schema field order

    @property
    def message(self) -> str:
        """All reasons as one line, the way they are reported per row."""
        return ", ".join(self.reasons)


@dataclass(frozen=True, slots=True)
class Stored:
    """The store accepted the record."""


@dataclass(frozen=True, slots=True)
class Rejected:
    """The store refused the record."""
    reason: str                 # verbatim cause reported by the store


ValidationOutcome = Union[Valid, Invalid]
PersistenceOutcome = Union[Stored, Rejected]

# shared, stateless instances
VALID = Valid()
STORED = Stored()
