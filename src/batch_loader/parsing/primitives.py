from __future__ import annotations

from typing import Any

from batch_loader.errors import ValidationError


def is_blank(v: Any) -> bool:
    """`True` for absent cells and whitespace-only strings."""
    if v is None:
        return True
    return isinstance(v, str) and v.strip() == ""


## -- text fields

def require_text(v: Any, *, field: str) -> str:
    """
    Check a value that must be present.
    Raises on:
    - `None` (field absent from the row).
    - non `str` typed input.
    - empty strings.
    """
    if v is None:
        raise ValidationError(field, "is required")
    if not isinstance(v, str):
        raise ValidationError(field, f"must be string, got {type(v).__name__}")
    if v.strip() == "":
        raise ValidationError(field, "must not be empty")
    return v


def optional_text(v: Any, *, field: str) -> str | None:
    """Check a value that may be missing. Blank counts as missing."""
    if is_blank(v):
        return None
    if not isinstance(v, str):
        raise ValidationError(field, f"must be string, got {type(v).__name__}")
    return v


## -- length bounds (counted in characters, not bytes)

def check_min_length(s: str, limit: int, *, field: str) -> None:
    if len(s) < limit:
        raise ValidationError(field, f"must not have fewer than {limit} characters")


def check_max_length(s: str, limit: int, *, field: str) -> None:
    if len(s) > limit:
        raise ValidationError(field, f"must not have more than {limit} characters")
