"""
core/access.py -- Access-control decisions for resource mutation and disclosure.

Two independent rules:
  ownership -- self-service mutate/delete is allowed only for the owner.
  role      -- privileged mutate/delete is allowed for the admin role,
               whatever the ownership.

decide() is the rule as a pure function. owner_scope() is the same rule in
filter form: the orchestrator folds it into the WHERE clause of the write so
the check and the mutation are one statement. Reading a row to check its
owner and then writing it unconditionally is the race this module exists to
prevent.

Layer rule: core/ is the kernel. No imports from api/, auth/, or resources/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from core.errors import ErrorKind

ActorId = Union[int, str]


class Role(str, Enum):
    STANDARD = "user"
    PRIVILEGED = "admin"


class Action(str, Enum):
    READ = "read"
    SELF_SERVICE_CREATE = "self_service_create"
    SELF_SERVICE_MUTATE = "self_service_mutate"
    SELF_SERVICE_DELETE = "self_service_delete"
    PRIVILEGED_MUTATE = "privileged_mutate"
    PRIVILEGED_DELETE = "privileged_delete"


class DenyReason(str, Enum):
    NOT_OWNER = "not_owner"
    NOT_PRIVILEGED = "not_privileged"


_SELF_SERVICE = {Action.SELF_SERVICE_MUTATE, Action.SELF_SERVICE_DELETE}
_PRIVILEGED = {Action.PRIVILEGED_MUTATE, Action.PRIVILEGED_DELETE}


@dataclass(frozen=True)
class Actor:
    """An authenticated identity. Built from a verified token, never a request body."""

    id: ActorId
    role: Role = Role.STANDARD

    @property
    def is_privileged(self) -> bool:
        return self.role == Role.PRIVILEGED


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


ALLOW = Decision(allowed=True)


def decide(actor: Actor, resource_owner_id: Optional[ActorId], action: Action) -> Decision:
    """Return ALLOW or a deny Decision for actor performing action.

    resource_owner_id is ignored for every action except self-service
    mutate/delete; privileged actions never look at ownership.
    """
    if action in _SELF_SERVICE:
        if resource_owner_id is not None and actor.id == resource_owner_id:
            return ALLOW
        return Decision.deny(DenyReason.NOT_OWNER)
    if action in _PRIVILEGED:
        if actor.is_privileged:
            return ALLOW
        return Decision.deny(DenyReason.NOT_PRIVILEGED)
    # READ and SELF_SERVICE_CREATE. Create forces owner = actor.id downstream.
    return ALLOW


def owner_scope(actor: Actor, action: Action) -> Optional[ActorId]:
    """Return the owner predicate to combine into a write filter, or None.

    For self-service mutate/delete this is actor.id: a row matches
    {id, owner_id == owner_scope(...)} exactly when decide() allows. Every
    other action carries no ownership predicate.
    """
    if action in _SELF_SERVICE:
        return actor.id
    return None


def deny_error_kind(reason: DenyReason) -> ErrorKind:
    """Map a deny reason to what the caller observes.

    Ownership denial looks exactly like a missing resource. Role denial is
    reported as such.
    """
    if reason == DenyReason.NOT_OWNER:
        return ErrorKind.NOT_FOUND_OR_UNAUTHORIZED
    return ErrorKind.PRIVILEGE_DENIED
