"""
api/routes/v1/users.py -- User account endpoints.

Routes:
  GET    /users           -- list users (public, redacted)
  POST   /users           -- register; role is always "user"
  PUT    /users           -- update the caller's own account
  DELETE /users           -- delete the caller's account and its resources
  GET    /users/token     -- echo the verified identity behind the token
  GET    /users/{user_id} -- one user (public, redacted)

Every user record leaving these handlers passes through core.redaction.redact(),
so neither the password hash nor the role is ever disclosed, including to the
account's own holder.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import ErrorDetail, MessageResponse, UserCreate, UserOut, UserUpdate
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from core.access import Role
from core.redaction import redact

logger = logging.getLogger("resourcemap.api")

router = APIRouter()


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=ErrorDetail(code="conflict", message="A user with that name or email already exists.").model_dump(),
    )


def _user_not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message="No user found.").model_dump(),
    )


@router.get("/users", response_model=list[UserOut])
def list_users(request: Request) -> list[dict]:
    user_store: UserStore = request.app.state.user_store
    return [redact(u) for u in user_store.list_users()]


@limiter.limit("10/minute")
@router.post("/users", response_model=MessageResponse, status_code=201)
def create_user(request: Request, body: UserCreate) -> MessageResponse:
    """Register a standard account. Admins are created with the CLI only."""
    user_store: UserStore = request.app.state.user_store
    new_user = User(
        user_name=body.user_name,
        email=body.email,
        password=hash_password(body.password, request.app.state.hashing),
        role=Role.STANDARD.value,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise _conflict() from exc
    logger.info("User %s registered", user_id)
    return MessageResponse(message="User created", data=redact(user_store.get_by_id(user_id)))


@router.put("/users", response_model=MessageResponse)
def update_current_user(
    request: Request,
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    user_store: UserStore = request.app.state.user_store
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "password" in changes:
        changes["password"] = hash_password(changes["password"], request.app.state.hashing)
    try:
        updated = user_store.update_self(current_user.id, **changes)
    except IntegrityError as exc:
        raise _conflict() from exc
    if updated is None:
        raise _user_not_found()
    return MessageResponse(message="User updated", data=redact(updated))


@router.delete("/users", response_model=MessageResponse)
def delete_current_user(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Delete the caller's account. Resources it owns are deleted first so none is left ownerless.

    The two deletes are separate transactions on separate engines. A create
    from this user that authenticated before the account row is removed can
    still commit after the resources are removed and leave a resource with a
    missing owner. to_public() renders such an owner as {"id": ...} only.
    """
    removed = request.app.state.resource_service.store.delete_by_owner(current_user.id)
    deleted = request.app.state.user_store.delete_user(current_user.id)
    if deleted is None:
        raise _user_not_found()
    logger.info("User %s deleted with %d resource(s)", current_user.id, removed)
    return MessageResponse(message="User deleted", data=redact(deleted))


@router.get("/users/token", response_model=UserOut)
def check_token(current_user: User = Depends(get_current_user)) -> dict:
    """Return the identity behind a valid token. No extra lookup beyond authentication."""
    return redact(current_user)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(request: Request, user_id: int) -> dict:
    user = request.app.state.user_store.get_by_id(user_id)
    if user is None:
        raise _user_not_found()
    return redact(user)
