"""
tests/conftest.py -- Shared test fixtures for ResourceMap integration tests.

This module provides:
  - _make_test_stores(): isolated in-memory DB shared by the user and resource stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus tokens for one admin and two standard users

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI shares one in-memory instance across connections.

DEBUG must be set before any core/auth import so get_settings() generates a
SECRET_KEY instead of raising.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

# CRITICAL: Set before any core/auth import -- Settings is cached on first use.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="resourcemap-test-uploads-"))

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import HashingConfig, create_access_token, hash_password
from resources.service import ResourceService
from resources.store import ResourceStore

# Lowest bcrypt cost -- tests only need correct hashes, not slow ones.
TEST_HASHING = HashingConfig.generate(rounds=4)


class ApiContext(NamedTuple):
    client: TestClient
    admin_token: str
    admin_id: int
    alice_token: str
    alice_id: int
    bob_token: str
    bob_id: int


def _make_test_stores(db_suffix: str) -> tuple[UserStore, ResourceStore]:
    """Create both stores on one named shared-memory SQLite database."""
    url = f"sqlite:///file:test_resourcemap_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), ResourceStore(db_url=url)


def _patch_lifespan(user_store: UserStore, resource_store: ResourceStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.hashing = TEST_HASHING
        app.state.user_store = user_store
        app.state.resource_service = ResourceService(resource_store, user_store)
        yield

    return test_lifespan


def _add_user(store: UserStore, name: str, role: str, password: str = "secret123") -> tuple[int, str]:
    uid = store.create_user(
        User(
            user_name=name,
            email=f"{name}@example.com",
            password=hash_password(password, TEST_HASHING),
            role=role,
        )
    )
    return uid, create_access_token(user_id=uid, user_name=name, role=role, expire_seconds=3600)


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    limiter.reset()


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for integration tests.

    Users created before the client starts:
      admin (role admin), alice and bob (role user); all with password "secret123".
    """
    user_store, resource_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])

    admin_id, admin_token = _add_user(user_store, "admin", "admin")
    alice_id, alice_token = _add_user(user_store, "alice", "user")
    bob_id, bob_token = _add_user(user_store, "bob", "user")

    app.router.lifespan_context = _patch_lifespan(user_store, resource_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client, admin_token, admin_id, alice_token, alice_id, bob_token, bob_id)

    resource_store.close()
    user_store.close()
