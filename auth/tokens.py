"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, user_name, role and expiry. Verification returns None on any
       failure -- the dependency layer turns that into a 401.

  Passwords: bcrypt. The salt is a HashingConfig value generated once at
       process start (api lifespan or CLI) and passed to hash_password()
       explicitly. Nothing here reads it from module state.

  SECRET_KEY: sourced from core.config.get_settings(), which validates it.

Layer rule: no imports from api/ or resources/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("resourcemap.auth")

_ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HashingConfig:
    """bcrypt salt shared by every hash computed in this process. Read-only."""

    salt: bytes

    @classmethod
    def generate(cls, rounds: int = 10) -> "HashingConfig":
        return cls(salt=bcrypt.gensalt(rounds=rounds))


def hash_password(plain: str, config: HashingConfig) -> str:
    """Return a bcrypt hash of plain using the process salt.

    Input over 72 bytes raises ValueError on current bcrypt releases.
    Callers check the encoded length first (api.models, main.py).
    """
    return bcrypt.hashpw(plain.encode("utf-8"), config.salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=4)
def _dummy_hash(config: HashingConfig) -> str:
    return hash_password("resourcemap_timing_dummy", config)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, user_name: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT with user identity and expiry.

    expire_seconds of 0 uses Settings.token_expire_seconds.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": user_name,
        "user_id": user_id,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "user_id" not in payload or "role" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# User authentication
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, user_name: str, password: str, config: HashingConfig) -> User | None:
    """Authenticate a user_name/password login.

    Always runs bcrypt whether or not the user exists, so response time does
    not reveal which user names are registered.
    """
    user = store.get_by_user_name(user_name)
    if user is None:
        verify_password(password, _dummy_hash(config))
        return None
    if not verify_password(password, user.password):
        logger.info("Failed login for user_name=%s", user_name)
        return None
    return user
