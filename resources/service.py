"""
resources/service.py -- Orchestration of resource CRUD.

ResourceService combines three things per operation: input validation, an
access decision from core.access, and a ResourceStore call. It never raises
for validation, authorization or persistence faults; every method returns a
core.errors.Result that the HTTP layer maps in one place.

Ordering rules:
  - Validation failures return before any store call.
  - Privileged operations are decided (role only) before touching the store;
    a denial is reported immediately and distinctly.
  - Self-service mutations send the owner predicate from owner_scope() into
    the store's write filter. A miss is reported exactly like a missing id.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from auth.store import UserStore
from core.access import Action, Actor, decide, deny_error_kind, owner_scope
from core.errors import ErrorKind, Result, ValidationError
from core.geo import as_geojson, parse_corner, resolve, validate_coordinate
from core.redaction import redact
from resources.models import Resource, ResourceDraft
from resources.store import ResourceStore

logger = logging.getLogger("resourcemap.resources")

_NOT_FOUND = "Resource not found or ownership not confirmed"
_OWNER_FIELDS = ("id", "user_name", "email")
_REQUIRED = ("name", "latitude", "longitude", "owner_id")


def _validation_failure(exc: ValidationError) -> Result:
    return Result.failure(ErrorKind.VALIDATION, str(exc))


def _internal_failure(op: str, exc: Exception) -> Result:
    logger.exception("Persistence failure during %s", op)
    return Result.failure(ErrorKind.INTERNAL, "An unexpected error occurred.", detail=str(exc))


def _normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Reject nulls for required columns, then validate latitude/longitude together."""
    nulls = [f"Field may not be null: {k}" for k in _REQUIRED if k in changes and changes[k] is None]
    if nulls:
        raise ValidationError(nulls)
    if "latitude" not in changes and "longitude" not in changes:
        return changes
    if "latitude" not in changes or "longitude" not in changes:
        raise ValidationError(["Latitude and longitude must be changed together: location"])
    point = validate_coordinate(changes["latitude"], changes["longitude"])
    return {**changes, "latitude": point.lat, "longitude": point.lng}


class ResourceService:
    def __init__(self, store: ResourceStore, user_store: UserStore) -> None:
        self.store = store
        self.user_store = user_store

    # ------------------------------------------------------------------
    # Presentation helper
    # ------------------------------------------------------------------

    def to_public(self, resources: list[Resource]) -> list[dict]:
        """Serialize resources with the owner expanded to a redacted summary."""
        owners = self.user_store.get_many({r.owner_id for r in resources})
        out = []
        for r in resources:
            owner = owners.get(r.owner_id)
            if owner is not None:
                public_owner: Any = {k: v for k, v in redact(owner).items() if k in _OWNER_FIELDS}
            else:
                public_owner = {"id": r.owner_id}
            out.append(
                {
                    "id": r.id,
                    "name": r.name,
                    "weight": r.weight,
                    "birthdate": r.birthdate,
                    "filename": r.filename,
                    "location": {"type": "Point", "coordinates": [r.longitude, r.latitude]},
                    "owner": public_owner,
                    "created_at": r.created_at,
                }
            )
        return out

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_resources(self) -> Result[list[Resource]]:
        try:
            return Result.success(self.store.list_all())
        except SQLAlchemyError as exc:
            return _internal_failure("list_resources", exc)

    def get_resource(self, resource_id: int) -> Result[Resource]:
        try:
            resource = self.store.get(resource_id)
        except SQLAlchemyError as exc:
            return _internal_failure("get_resource", exc)
        if resource is None:
            return Result.failure(ErrorKind.NOT_FOUND_OR_UNAUTHORIZED, "No resource found")
        return Result.success(resource)

    def list_owned(self, actor: Actor) -> Result[list[Resource]]:
        try:
            return Result.success(self.store.list_by_owner(actor.id))
        except SQLAlchemyError as exc:
            return _internal_failure("list_owned", exc)

    def list_within(self, top_right: str, bottom_left: str) -> Result[list[Resource]]:
        """Resources inside the box given as two "lat,lng" strings."""
        try:
            ring = resolve(parse_corner(top_right, "topRight"), parse_corner(bottom_left, "bottomLeft"))
        except ValidationError as exc:
            return _validation_failure(exc)
        logger.debug("Spatial query within %s", as_geojson(ring))
        try:
            return Result.success(self.store.find_within(ring))
        except SQLAlchemyError as exc:
            return _internal_failure("list_within", exc)

    # ------------------------------------------------------------------
    # Self-service writes
    # ------------------------------------------------------------------

    def create(self, actor: Actor, draft: ResourceDraft) -> Result[Resource]:
        """Create a resource owned by actor. draft has no owner to override."""
        try:
            point = validate_coordinate(draft.latitude, draft.longitude)
        except ValidationError as exc:
            return _validation_failure(exc)
        fields = asdict(draft)
        fields.update(latitude=point.lat, longitude=point.lng)
        resource = Resource(owner_id=actor.id, **fields)
        try:
            resource_id = self.store.create(resource)
            created = self.store.get(resource_id)
        except SQLAlchemyError as exc:
            return _internal_failure("create", exc)
        logger.info("Resource %s created by user %s", resource_id, actor.id)
        return Result.success(created)

    def update_own(self, actor: Actor, resource_id: int, changes: dict[str, Any]) -> Result[Resource]:
        if "owner_id" in changes:
            return Result.failure(ErrorKind.VALIDATION, "Owner cannot be changed here: owner")
        try:
            changes = _normalize_changes(changes)
        except ValidationError as exc:
            return _validation_failure(exc)
        scope = owner_scope(actor, Action.SELF_SERVICE_MUTATE)
        try:
            updated = self.store.update(resource_id, changes, owner_id=scope)
        except SQLAlchemyError as exc:
            return _internal_failure("update_own", exc)
        if updated is None:
            return Result.failure(ErrorKind.NOT_FOUND_OR_UNAUTHORIZED, _NOT_FOUND)
        return Result.success(updated)

    def delete_own(self, actor: Actor, resource_id: int) -> Result[Resource]:
        scope = owner_scope(actor, Action.SELF_SERVICE_DELETE)
        try:
            deleted = self.store.delete(resource_id, owner_id=scope)
        except SQLAlchemyError as exc:
            return _internal_failure("delete_own", exc)
        if deleted is None:
            return Result.failure(ErrorKind.NOT_FOUND_OR_UNAUTHORIZED, _NOT_FOUND)
        logger.info("Resource %s deleted by owner %s", resource_id, actor.id)
        return Result.success(deleted)

    # ------------------------------------------------------------------
    # Privileged writes
    # ------------------------------------------------------------------

    def _deny_unless(self, actor: Actor, action: Action) -> Optional[Result]:
        decision = decide(actor, None, action)
        if decision.allowed:
            return None
        logger.warning("User %s denied %s (%s)", actor.id, action.value, decision.reason.value)
        return Result.failure(deny_error_kind(decision.reason), "Not authorized")

    def update_any(self, actor: Actor, resource_id: int, changes: dict[str, Any]) -> Result[Resource]:
        """Privileged update. changes may carry owner_id to transfer ownership."""
        denied = self._deny_unless(actor, Action.PRIVILEGED_MUTATE)
        if denied is not None:
            return denied
        try:
            changes = _normalize_changes(changes)
        except ValidationError as exc:
            return _validation_failure(exc)
        try:
            if "owner_id" in changes and self.user_store.get_by_id(changes["owner_id"]) is None:
                return Result.failure(ErrorKind.VALIDATION, "Unknown user: owner")
            updated = self.store.update(resource_id, changes)
        except SQLAlchemyError as exc:
            return _internal_failure("update_any", exc)
        if updated is None:
            return Result.failure(ErrorKind.NOT_FOUND_OR_UNAUTHORIZED, "No resource found")
        logger.info("Resource %s updated by admin %s", resource_id, actor.id)
        return Result.success(updated)

    def delete_any(self, actor: Actor, resource_id: int) -> Result[Resource]:
        denied = self._deny_unless(actor, Action.PRIVILEGED_DELETE)
        if denied is not None:
            return denied
        try:
            deleted = self.store.delete(resource_id)
        except SQLAlchemyError as exc:
            return _internal_failure("delete_any", exc)
        if deleted is None:
            return Result.failure(ErrorKind.NOT_FOUND_OR_UNAUTHORIZED, "No resource found")
        logger.info("Resource %s deleted by admin %s", resource_id, actor.id)
        return Result.success(deleted)
