"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The actor is taken from an "Authorization: Bearer <jwt>" header only. The
token's user_id is re-resolved against the user store on every request, so a
token for a deleted account stops working immediately and the role used for
decisions is the stored one, not a stale claim.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
get_current_actor() narrows the User to the core Actor value that every
access decision takes as an explicit argument.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from auth.models import User
from auth.tokens import decode_access_token
from core.access import Actor


def try_get_current_user(request: Request) -> User | None:
    """Authenticate via Bearer token. Returns the User or None. Never raises."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    payload = decode_access_token(auth_header[7:])
    if not payload:
        return None
    return request.app.state.user_store.get_by_id(payload["user_id"])


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    return user.as_actor()
