# railclub/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class RailclubError(Exception):
    """Base for every failure a caller is expected to handle."""


class ValidationError(RailclubError):
    """Missing or malformed input."""


class NotFoundError(RailclubError):
    """The addressed id/token does not exist."""


class ConflictError(RailclubError):
    """A uniqueness rule would be broken."""


class StoreError(RailclubError):
    """The underlying persistence call failed."""


class CreationError(StoreError):
    """The store rejected an insert."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either data or an error, never both.
    Service operations return this instead of raising past their caller.
    """

    data: T | None = None
    error: RailclubError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "Result[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: RailclubError) -> "Result[T]":
        return cls(error=error)
