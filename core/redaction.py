"""
core/redaction.py -- Field projection applied to every actor record we disclose.

The password hash and the role are removed from every user record that
leaves the API, whoever is looking. There is deliberately no "owner sees own
record" branch: viewer_role is accepted so call sites read naturally, but it
does not change the output.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any, Mapping, Optional

REDACTED_FIELDS = frozenset({"password", "hashed_password", "role"})


def redact(actor_record: Any, viewer_role: Optional[str] = None) -> dict:
    """Return a copy of actor_record without credential or role fields."""
    if is_dataclass(actor_record) and not isinstance(actor_record, type):
        data: Mapping[str, Any] = asdict(actor_record)
    elif isinstance(actor_record, Mapping):
        data = actor_record
    else:
        raise TypeError(f"Cannot redact {type(actor_record).__name__}")
    return {k: v for k, v in data.items() if k not in REDACTED_FIELDS}
