"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as resources/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and
dependency code never touches SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import User
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_name", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
)

# Fields a user may change on their own record. role is absent on purpose.
_SELF_MUTABLE = frozenset({"user_name", "email", "password"})


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///:memory:")
        uid = store.create_user(User(user_name="alice", email="a@x.io", password=hashed))
        user = store.get_by_id(uid)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError if user_name or email is taken.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    user_name=user.user_name,
                    email=user.email,
                    password=user.password,
                    role=user.role,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_user_name(self, user_name: str) -> User | None:
        """Look up a user by exact user_name (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.user_name == user_name)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_many(self, user_ids: set[int]) -> dict[int, User]:
        """Return {id: User} for the given ids. Missing ids are simply absent."""
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.id.in_(user_ids))).fetchall()
        return {r.id: _row_to_user(r) for r in rows}

    def list_users(self) -> list[User]:
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_self(self, user_id: int, **fields) -> User | None:
        """Update the caller's own record and return it, or None if it no longer exists.

        Only user_name, email and password are accepted; anything else raises
        ValueError so a role change can never slip through this path.
        """
        unknown = set(fields) - _SELF_MUTABLE
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)!r}")
        with self.engine.connect() as conn:
            if fields:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
                if result.rowcount == 0:
                    conn.rollback()
                    return None
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
            conn.commit()
        return _row_to_user(row) if row is not None else None

    def delete_user(self, user_id: int) -> User | None:
        """Delete a user and return the deleted record, or None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
            if row is None:
                return None
            conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return _row_to_user(row)

    def count_users(self) -> int:
        """Cheap liveness query used by the health endpoint."""
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_users)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        user_name=row.user_name,
        email=row.email,
        password=row.password,
        role=row.role,
        created_at=row.created_at,
    )
