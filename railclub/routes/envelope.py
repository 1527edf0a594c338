# railclub/routes/envelope.py
from __future__ import annotations

from datetime import date, datetime
from typing import TypeVar

from railclub.errors import (
    ConflictError,
    NotFoundError,
    RailclubError,
    Result,
    StoreError,
    ValidationError,
)

T = TypeVar("T")

_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StoreError, 500),
)


def status_for_error(err: RailclubError) -> int:
    for cls, code in _STATUS:
        if isinstance(err, cls):
            return code
    return 500


def unwrap(result: Result[T]) -> T:
    """Return result.data, or raise result.error for the app-level handler to render."""
    if result.error is not None:
        raise result.error
    return result.data  # type: ignore[return-value]


def iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value else None
