"""Helpers shared by the record dataclasses."""

from __future__ import annotations

import time
from dataclasses import fields
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar
from uuid import uuid4

from storage.errors import ValidationFailure

T = TypeVar("T")


def new_record_id(now: Optional[float] = None) -> str:
    """Return a time-ordered id: 13 digits of epoch millis then 8 hex chars.

    Sorting these ids as strings follows creation order, which the feed uses
    as its tie-breaker.
    """

    millis = int((time.time() if now is None else now) * 1000)
    return f"{millis:013d}{uuid4().hex[:8]}"


def dedupe(values: Iterable[Any]) -> List[Any]:
    """Drop repeated entries while keeping first-seen order."""

    result: List[Any] = []
    seen = set()
    for value in values or []:
        if value not in seen:
            result.append(value)
            seen.add(value)
    return result


def require_text(value: Any, field_name: str) -> str:
    """Return ``value`` stripped, raising when it is empty."""

    text = str(value or "").strip()
    if not text:
        raise ValidationFailure(f"'{field_name}' must not be empty")
    return text


def from_record(cls: Type[T], record: Dict[str, Any]) -> T:
    """Build a dataclass from a stored record, ignoring unknown keys."""

    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    return cls(**{key: value for key, value in record.items() if key in known})


__all__ = ["new_record_id", "dedupe", "require_text", "from_record"]
