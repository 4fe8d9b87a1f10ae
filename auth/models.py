"""
auth/models.py -- Domain dataclass for user accounts.

Pattern: Data class (pure data container, zero logic beyond the Actor view).
Stores and routes do the work.

Layer rule: no imports from api/ or resources/.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.access import Actor, Role


@dataclass
class User:
    """A registered account.

    password holds the bcrypt hash, never plaintext. It and role are stripped
    by core.redaction.redact() before any user record is returned.
    """

    user_name: str
    email: str
    password: str  # bcrypt hash
    role: str = Role.STANDARD.value  # "user" | "admin"
    id: int | None = None
    created_at: str | None = None

    def as_actor(self) -> Actor:
        return Actor(id=self.id, role=Role(self.role))
