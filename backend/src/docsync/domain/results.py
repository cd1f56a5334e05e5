"""Explicit result type for expected outcomes.

Services return Result values for outcomes a caller is expected to handle
(not found, rejected transition, storage failure). Exceptions are kept for
faults nobody planned for.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from .errors import (
    ConcurrencyConflictError,
    DocSyncError,
    DocumentUploadError,
    ForwardingError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of an unsuccessful Result."""
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT = "CONFLICT"
    STORAGE = "STORAGE"
    FORWARDING = "FORWARDING"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation.

    Attributes:
        ok: True if the operation succeeded
        value: Returned value (only meaningful when ok)
        error_kind: Failure category (None when ok)
        message: Human-readable failure reason, for logs only
    """
    ok: bool
    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "Result[T]":
        return cls(ok=False, error_kind=error_kind, message=message)

    @classmethod
    def from_error(cls, error: DocSyncError) -> "Result[T]":
        return cls.failure(error_kind_for(error), str(error))


# Order matters: subclasses are listed before their bases.
_ERROR_KINDS = (
    (NotFoundError, ErrorKind.NOT_FOUND),
    (ValidationError, ErrorKind.VALIDATION),
    (InvalidTransitionError, ErrorKind.INVALID_TRANSITION),
    (ConcurrencyConflictError, ErrorKind.CONFLICT),
    (DocumentUploadError, ErrorKind.STORAGE),
    (ForwardingError, ErrorKind.FORWARDING),
)


def error_kind_for(error: DocSyncError) -> ErrorKind:
    """Map a domain error to its ErrorKind.

    Args:
        error: Domain or gateway error

    Returns:
        ErrorKind: Matching category, UNAVAILABLE for anything unclassified
    """
    for error_type, kind in _ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    return ErrorKind.UNAVAILABLE
