"""
api/errors.py -- The one place a service Result becomes an HTTP outcome.

Route handlers call unwrap() on every Result. A failure is raised as an
HTTPException whose detail is an ErrorDetail dict; api/main.py renders it in
the shared {"error": {...}} envelope.

NOT_FOUND_OR_UNAUTHORIZED renders the same body whether the row is missing
or owned by someone else. INTERNAL never includes the collaborator's message.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException

from api.models import ErrorDetail
from core.errors import ErrorKind, Result

T = TypeVar("T")

_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND_OR_UNAUTHORIZED: 404,
    ErrorKind.PRIVILEGE_DENIED: 403,
    ErrorKind.INTERNAL: 500,
}


def unwrap(result: Result[T]) -> T:
    """Return the Result's value or raise the mapped HTTPException."""
    if result.ok:
        return result.value
    err = result.error
    message = err.message
    if err.kind == ErrorKind.INTERNAL:
        message = "An unexpected error occurred."
    elif err.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED:
        message = "Resource not found."
    raise HTTPException(
        status_code=_STATUS[err.kind],
        detail=ErrorDetail(code=err.kind.value, message=message).model_dump(),
    )
