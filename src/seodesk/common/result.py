"""Explicit success/failure values returned across component boundaries."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure taxonomy shared by all core operations."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value-or-error. Check ``ok`` before reading ``value``."""

    ok: bool
    value: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(ok=True, value=value)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.VALIDATION) -> Result[T]:
        return cls(ok=False, error=error, kind=kind)

    @classmethod
    def not_found(cls, what: str) -> Result[T]:
        return cls(ok=False, error=f"{what} not found", kind=ErrorKind.NOT_FOUND)


_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.EXTERNAL: 502,
}


def http_status(result: Result[object]) -> int:
    """HTTP status code a router should use for a failed result."""
    return _STATUS_BY_KIND.get(result.kind or ErrorKind.VALIDATION, 400)
