"""
core/errors.py -- Error kinds and the Result type returned by services.

Validation and authorization failures are values, not exceptions. Services
return Result[T]; the HTTP layer maps a failed Result to a response in one
place (api/errors.py). The only exception defined here, ValidationError, is
raised by the pure parsing helpers in core/geo.py and converted to a Result
by the service that calls them.

Layer rule: core/ is the kernel. No imports from api/, auth/, or resources/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Externally observable failure categories.

    NOT_FOUND_OR_UNAUTHORIZED covers both "no such resource" and "exists but
    the caller does not own it". The two are never distinguished to a caller.
    """

    VALIDATION = "validation_error"
    NOT_FOUND_OR_UNAUTHORIZED = "not_found"
    PRIVILEGE_DENIED = "forbidden"
    INTERNAL = "internal_error"


class ValidationError(ValueError):
    """Malformed input. Carries one message per offending field."""

    def __init__(self, messages: list[str]) -> None:
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str
    # Internal detail for logs only. Never rendered into a response body.
    detail: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation: either a value or a ServiceError."""

    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, detail: Optional[str] = None) -> "Result[T]":
        return cls(error=ServiceError(kind=kind, message=message, detail=detail))
