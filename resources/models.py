"""
resources/models.py -- Domain dataclasses for location-tagged resources.

Pure data containers. Authorization lives in core/access.py, persistence in
resources/store.py, orchestration in resources/service.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Resource:
    """A location-tagged entity with exactly one owner.

    owner_id is a plain user id, not a foreign key: deleting the owning user
    is handled by the caller (see api/routes/v1/users.delete_current_user).

    id is None before the record is written to the database.
    """

    name: str
    owner_id: int
    latitude: float
    longitude: float
    weight: Optional[float] = None
    birthdate: Optional[str] = None  # ISO 8601 date
    filename: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class ResourceDraft:
    """Caller-supplied attributes for a new resource. Has no owner field."""

    name: str
    latitude: float
    longitude: float
    weight: Optional[float] = None
    birthdate: Optional[str] = None
    filename: Optional[str] = None
