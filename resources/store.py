"""
resources/store.py -- SQLAlchemy-backed persistence layer for resources.

Uses SQLAlchemy Core (not ORM) so the dataclasses in resources/models.py stay
the authoritative domain representation.

Pattern: Repository + Data Mapper. ResourceStore is the repository;
_row_to_resource is the mapper. Route handlers never touch SQL directly.

Authorization-scoped writes:
  update() and delete() take an optional owner_id. When given, it is part of
  the same WHERE clause as the id, so "is the caller the owner?" and "write
  the row" are one statement. There is no method that reads a row to check
  ownership and then writes it.

Spatial queries:
  SQLite has no spatial index. find_within() narrows candidates with a
  BETWEEN on the ring's envelope, then applies core.geo.contains() to each.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ResourceStore("sqlite:///:memory:")
    rid = store.create(resource)
    store.update(rid, {"name": "new"}, owner_id=actor.id)
    store.close()
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine

from core.config import get_settings
from core.geo import Ring, contains, envelope
from resources.models import Resource

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_resources = Table(
    "resources",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("weight", Float),
    Column("birthdate", String(10)),  # YYYY-MM-DD
    Column("filename", String(255)),
    Column("latitude", Float, nullable=False),
    Column("longitude", Float, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Columns an update may touch. owner_id is only accepted on the unscoped path.
_MUTABLE = frozenset({"name", "weight", "birthdate", "filename", "latitude", "longitude"})


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResourceStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, resource_id: int) -> Optional[Resource]:
        with self.engine.connect() as conn:
            row = conn.execute(_resources.select().where(_resources.c.id == resource_id)).fetchone()
        return _row_to_resource(row) if row is not None else None

    def list_all(self) -> list[Resource]:
        with self.engine.connect() as conn:
            rows = conn.execute(_resources.select().order_by(_resources.c.id)).fetchall()
        return [_row_to_resource(r) for r in rows]

    def list_by_owner(self, owner_id: int) -> list[Resource]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _resources.select().where(_resources.c.owner_id == owner_id).order_by(_resources.c.id)
            ).fetchall()
        return [_row_to_resource(r) for r in rows]

    def find_within(self, ring: Ring) -> list[Resource]:
        """Return resources whose location lies inside the closed ring."""
        min_lng, min_lat, max_lng, max_lat = envelope(ring)
        with self.engine.connect() as conn:
            rows = conn.execute(
                _resources.select()
                .where(
                    _resources.c.longitude.between(min_lng, max_lng)
                    & _resources.c.latitude.between(min_lat, max_lat)
                )
                .order_by(_resources.c.id)
            ).fetchall()
        return [_row_to_resource(r) for r in rows if contains(ring, r.longitude, r.latitude)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, resource: Resource) -> int:
        """Insert a resource and return its id. owner_id is taken as given."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _resources.insert().values(
                    name=resource.name,
                    owner_id=resource.owner_id,
                    weight=resource.weight,
                    birthdate=resource.birthdate,
                    filename=resource.filename,
                    latitude=resource.latitude,
                    longitude=resource.longitude,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update(self, resource_id: int, changes: dict[str, Any], owner_id: Optional[int] = None) -> Optional[Resource]:
        """Apply changes and return the updated resource, or None if no row matched.

        With owner_id, the row must match both id and owner_id, and owner_id
        may not appear in changes. Without it (privileged path), owner_id may
        be changed to transfer ownership.
        """
        allowed = _MUTABLE if owner_id is not None else _MUTABLE | {"owner_id"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)!r}")

        condition = _resources.c.id == resource_id
        if owner_id is not None:
            condition = condition & (_resources.c.owner_id == owner_id)

        with self.engine.connect() as conn:
            if changes:
                result = conn.execute(_resources.update().where(condition).values(**changes))
                matched = result.rowcount > 0
            else:
                matched = conn.execute(_resources.select().where(condition)).fetchone() is not None
            if not matched:
                conn.rollback()
                return None
            row = conn.execute(_resources.select().where(_resources.c.id == resource_id)).fetchone()
            conn.commit()
        return _row_to_resource(row)

    def delete(self, resource_id: int, owner_id: Optional[int] = None) -> Optional[Resource]:
        """Delete and return the resource, or None if no row matched.

        The returned copy is read inside the same transaction as the delete,
        using the same condition.
        """
        condition = _resources.c.id == resource_id
        if owner_id is not None:
            condition = condition & (_resources.c.owner_id == owner_id)

        with self.engine.begin() as conn:
            row = conn.execute(_resources.select().where(condition)).fetchone()
            if row is None:
                return None
            result = conn.execute(_resources.delete().where(condition))
            if result.rowcount == 0:
                return None
        return _row_to_resource(row)

    def delete_by_owner(self, owner_id: int) -> int:
        """Delete every resource owned by owner_id. Returns rows removed."""
        with self.engine.begin() as conn:
            result = conn.execute(_resources.delete().where(_resources.c.owner_id == owner_id))
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_resource(row) -> Resource:
    return Resource(
        id=row.id,
        name=row.name,
        owner_id=row.owner_id,
        weight=row.weight,
        birthdate=row.birthdate,
        filename=row.filename,
        latitude=row.latitude,
        longitude=row.longitude,
        created_at=row.created_at,
    )
